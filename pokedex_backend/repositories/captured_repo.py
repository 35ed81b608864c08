"""Captured pokemon repository."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import StoreError
from ..core.lifecycle import Store
from ..db.models import CapturedPokemon


@dataclass(frozen=True)
class CapturedRecord:
    id: int
    payload: dict[str, Any]
    captured_at: datetime


@dataclass(frozen=True)
class Inserted:
    record: CapturedRecord


@dataclass(frozen=True)
class Conflict:
    """The id is already stored. An expected outcome, not a fault."""

    pokemon_id: int


InsertOutcome = Inserted | Conflict


@runtime_checkable
class CapturedPokemonRepository(Protocol):
    async def insert(self, pokemon_id: int, payload: dict[str, Any]) -> InsertOutcome: ...
    async def find_by_id(self, pokemon_id: int) -> CapturedRecord | None: ...
    async def list_all(self) -> list[CapturedRecord]: ...
    async def delete_by_id(self, pokemon_id: int) -> CapturedRecord | None: ...


_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SQLAlchemyCapturedPokemonRepository:
    """Every method is one statement in its own short transaction.

    Uniqueness of ``pokemon_id`` is left to the primary key: ``insert`` uses
    ``ON CONFLICT DO NOTHING ... RETURNING`` and reads an empty result as
    ``Conflict``, so concurrent duplicates never need a read-then-write.
    """

    def __init__(self, store: Store):
        self._store = store
        try:
            self._insert = _INSERT_BY_DIALECT[store.dialect_name]
        except KeyError:
            raise ValueError(f"unsupported dialect: {store.dialect_name}") from None

    async def insert(self, pokemon_id: int, payload: dict[str, Any]) -> InsertOutcome:
        stmt = (
            self._insert(CapturedPokemon)
            .values(pokemon_id=pokemon_id, data=payload)
            .on_conflict_do_nothing(index_elements=[CapturedPokemon.pokemon_id])
            .returning(CapturedPokemon.pokemon_id, CapturedPokemon.data, CapturedPokemon.captured_at)
        )
        try:
            async with self._store.session() as session:
                row = (await session.execute(stmt)).one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("insert", pokemon_id) from exc

        if row is None:
            return Conflict(pokemon_id)
        return Inserted(_to_record(row))

    async def find_by_id(self, pokemon_id: int) -> CapturedRecord | None:
        stmt = select(
            CapturedPokemon.pokemon_id, CapturedPokemon.data, CapturedPokemon.captured_at
        ).where(CapturedPokemon.pokemon_id == pokemon_id)
        try:
            async with self._store.session() as session:
                row = (await session.execute(stmt)).one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("find_by_id", pokemon_id) from exc
        return _to_record(row) if row is not None else None

    async def list_all(self) -> list[CapturedRecord]:
        stmt = select(
            CapturedPokemon.pokemon_id, CapturedPokemon.data, CapturedPokemon.captured_at
        ).order_by(CapturedPokemon.captured_at.desc(), CapturedPokemon.pokemon_id.desc())
        try:
            async with self._store.session() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as exc:
            raise StoreError("list_all") from exc
        return [_to_record(row) for row in rows]

    async def delete_by_id(self, pokemon_id: int) -> CapturedRecord | None:
        stmt = (
            delete(CapturedPokemon)
            .where(CapturedPokemon.pokemon_id == pokemon_id)
            .returning(CapturedPokemon.pokemon_id, CapturedPokemon.data, CapturedPokemon.captured_at)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._store.session() as session:
                row = (await session.execute(stmt)).one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("delete_by_id", pokemon_id) from exc
        return _to_record(row) if row is not None else None


def _to_record(row) -> CapturedRecord:
    captured_at = row.captured_at
    # SQLite returns naive values; they were written as UTC.
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=UTC)
    return CapturedRecord(id=row.pokemon_id, payload=row.data, captured_at=captured_at)
