"""CaptureService: idempotent capture, release and listing of pokemon."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError, field_validator

from ..core.errors import CaptureReconciliationError, PayloadValidationError, PokemonNotFoundError
from ..repositories.captured_repo import CapturedPokemonRepository, CapturedRecord, Inserted

logger = logging.getLogger("pokedex_backend.services.capture")

# pokemon_id is an INTEGER column.
MAX_POKEMON_ID = 2**31 - 1


class PokemonPayload(BaseModel):
    """Only ``id`` and ``name`` are checked; any other attribute passes through."""

    model_config = ConfigDict(extra="allow")

    id: StrictInt = Field(gt=0, le=MAX_POKEMON_ID)
    name: StrictStr

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value


@dataclass(frozen=True)
class CaptureResult:
    status: Literal["captured", "already_captured"]
    pokemon: dict[str, Any]
    captured_at: datetime


def validate_pokemon_id(pokemon_id: Any) -> int:
    if isinstance(pokemon_id, bool) or not isinstance(pokemon_id, int):
        raise PayloadValidationError("Invalid pokemon id.")
    if not 0 < pokemon_id <= MAX_POKEMON_ID:
        raise PayloadValidationError("Invalid pokemon id.")
    return pokemon_id


class CaptureService:
    def __init__(self, repo: CapturedPokemonRepository):
        self._repo = repo

    async def capture(self, payload: Any) -> CaptureResult:
        """Store ``payload`` once per id.

        A duplicate is resolved by re-reading the stored row and reported as
        ``already_captured``; only a row vanishing between the conflicting
        insert and the re-read is an error.
        """
        if not isinstance(payload, dict):
            raise PayloadValidationError("Pokemon payload must be a JSON object.")
        try:
            pokemon = PokemonPayload.model_validate(payload)
        except ValidationError as exc:
            raise PayloadValidationError(
                details=[
                    {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                    for err in exc.errors()
                ]
            ) from exc

        outcome = await self._repo.insert(pokemon.id, dict(payload))
        if isinstance(outcome, Inserted):
            logger.info("pokemon_captured", extra={"extra": {"pokemon_id": pokemon.id}})
            return CaptureResult(
                status="captured",
                pokemon=outcome.record.payload,
                captured_at=outcome.record.captured_at,
            )

        existing = await self._repo.find_by_id(pokemon.id)
        if existing is None:
            logger.warning("capture_conflict_unresolved", extra={"extra": {"pokemon_id": pokemon.id}})
            raise CaptureReconciliationError(pokemon.id)

        logger.info("capture_conflict_resolved", extra={"extra": {"pokemon_id": pokemon.id}})
        return CaptureResult(
            status="already_captured",
            pokemon=existing.payload,
            captured_at=existing.captured_at,
        )

    async def release(self, pokemon_id: Any) -> CapturedRecord:
        pokemon_id = validate_pokemon_id(pokemon_id)
        removed = await self._repo.delete_by_id(pokemon_id)
        if removed is None:
            raise PokemonNotFoundError(pokemon_id)
        logger.info("pokemon_released", extra={"extra": {"pokemon_id": pokemon_id}})
        return removed

    async def list(self) -> list[CapturedRecord]:
        return await self._repo.list_all()
