"""Service settings with local-dev-first defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


_LOCAL_CORS_ORIGINS = [
    "http://127.0.0.1:5173",
    "http://localhost:5173",
    "http://127.0.0.1:8080",
    "http://localhost:8080",
    "http://127.0.0.1:4173",
    "http://localhost:4173",
]

_DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./pokedex_dev.db"


@dataclass(frozen=True)
class Settings:
    env: str = field(default_factory=lambda: os.getenv("POKEDEX_ENV", "dev"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "4000")))

    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", _DEFAULT_DATABASE_URL)
    )

    pool_size: int = field(default_factory=lambda: int(os.getenv("DB_POOL_SIZE", "10")))
    max_overflow: int = field(default_factory=lambda: int(os.getenv("DB_MAX_OVERFLOW", "20")))
    pool_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("DB_POOL_TIMEOUT_S", "30"))
    )
    connect_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("DB_CONNECT_TIMEOUT_S", "10"))
    )

    shutdown_drain_timeout_s: float = field(
        default_factory=lambda: float(os.getenv("SHUTDOWN_DRAIN_TIMEOUT_S", "10"))
    )

    cors_origins_raw: str = field(default_factory=lambda: os.getenv("CORS_ORIGINS", ""))

    max_request_bytes: int = field(
        default_factory=lambda: int(os.getenv("MAX_REQUEST_BYTES", str(1024 * 1024)))
    )

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL rewritten for the async drivers.

        Plain ``postgres://`` / ``postgresql://`` URLs (what most hosting
        providers hand out) are pointed at asyncpg.
        """
        url = self.database_url
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix):]
        return url

    @property
    def cors_origins(self) -> list[str]:
        raw = [o.strip() for o in self.cors_origins_raw.split(",") if o.strip()]
        if any(o == "*" for o in raw):
            raise ValueError("CORS_ORIGINS must not include wildcard '*'")
        if raw:
            return raw
        return list(_LOCAL_CORS_ORIGINS)

    @property
    def is_dev(self) -> bool:
        return self.env == "dev"

    def validate(self) -> None:
        if not self.is_dev and self.database_url == _DEFAULT_DATABASE_URL:
            raise ValueError("DATABASE_URL environment variable is not set.")
        if self.max_request_bytes <= 0:
            raise ValueError("MAX_REQUEST_BYTES must be positive")
        # Surface a bad CORS_ORIGINS at startup rather than on first request.
        _ = self.cors_origins
