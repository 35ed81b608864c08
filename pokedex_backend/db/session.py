"""Async SQLAlchemy 2.0 engine + session factory."""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..config import Settings
from ..logging_utils import redact_url

logger = logging.getLogger("pokedex_backend.db")


def make_engine(settings: Settings, echo: bool = False) -> AsyncEngine:
    """Create an async engine with dialect-specific configuration.

    - PostgreSQL (asyncpg): bounded pool with pre-ping, pool and connect timeouts
    - SQLite (aiosqlite): check_same_thread=False, no pool sizing
    """
    database_url = settings.async_database_url
    connect_args: dict = {}
    kwargs: dict = {
        "echo": echo,
        "pool_pre_ping": True,
    }

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    elif database_url.startswith("postgresql"):
        kwargs["pool_size"] = settings.pool_size
        kwargs["max_overflow"] = settings.max_overflow
        kwargs["pool_timeout"] = settings.pool_timeout_s
        connect_args["timeout"] = settings.connect_timeout_s

    kwargs["connect_args"] = connect_args
    engine = create_async_engine(database_url, **kwargs)
    install_error_observer(engine)
    logger.info("engine_created", extra={"extra": {"url": redact_url(database_url)}})
    return engine


def install_error_observer(engine: AsyncEngine) -> None:
    """Log driver-level errors; the original exception still propagates.

    Disconnects invalidate the pool; pre-ping reconnects on the next lease.
    """

    @event.listens_for(engine.sync_engine, "handle_error")
    def _on_error(context) -> None:
        logger.warning(
            "store_driver_error",
            extra={
                "extra": {
                    "error": type(context.original_exception).__name__,
                    "is_disconnect": context.is_disconnect,
                }
            },
        )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
