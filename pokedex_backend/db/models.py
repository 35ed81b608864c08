"""SQLAlchemy ORM models, dual-dialect (Postgres/SQLite)."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .types import JSONB


class Base(DeclarativeBase):
    pass


class CapturedPokemon(Base):
    """One row per captured pokemon, keyed by its catalog id.

    ``captured_at`` is set once on insert and never updated.
    """

    __tablename__ = "captured_pokemon"

    pokemon_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONB(), nullable=False)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
