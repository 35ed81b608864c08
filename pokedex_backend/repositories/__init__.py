"""Repository layer — Protocol interfaces + SQLAlchemy implementations."""

from .captured_repo import (
    CapturedPokemonRepository,
    CapturedRecord,
    Conflict,
    InsertOutcome,
    Inserted,
    SQLAlchemyCapturedPokemonRepository,
)

__all__ = [
    "CapturedPokemonRepository", "SQLAlchemyCapturedPokemonRepository",
    "CapturedRecord", "Inserted", "Conflict", "InsertOutcome",
]
