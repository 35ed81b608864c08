"""Dialect-aware column types for Postgres/SQLite dual support."""

from __future__ import annotations

from sqlalchemy import types
from sqlalchemy.dialects import postgresql


class JSONB(types.TypeDecorator):
    """JSONB on Postgres, JSON on SQLite."""

    impl = types.JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.JSONB)
        return dialect.type_descriptor(types.JSON)
