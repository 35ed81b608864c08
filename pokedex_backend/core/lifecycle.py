"""Store lifecycle: schema bootstrap, per-operation leases, drain-then-close."""

from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..db.models import Base
from .errors import BootstrapError, StoreUnavailableError

logger = logging.getLogger("pokedex_backend.lifecycle")


class LifecycleState(str, enum.Enum):
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"


class Store:
    """Owns the engine/pool and hands out one transactional session per operation.

    STARTING -> SERVING on bootstrap(); SERVING -> DRAINING -> STOPPED on
    shutdown(). Sessions are only leased while SERVING.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        drain_timeout_s: float = 10.0,
    ):
        self._engine = engine
        self._sf = session_factory
        self._drain_timeout_s = drain_timeout_s
        self._state = LifecycleState.STARTING
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def active_leases(self) -> int:
        return self._active

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    async def bootstrap(self) -> None:
        """Create the schema if absent. Safe to run on every startup."""
        if self._state is not LifecycleState.STARTING:
            raise BootstrapError(f"cannot bootstrap from state {self._state.value}")
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            # WAL lets readers proceed while a capture is being written.
            if self.dialect_name == "sqlite":
                async with self._engine.begin() as conn:
                    await conn.execute(text("PRAGMA journal_mode=WAL"))
        except Exception as exc:
            logger.error("store_bootstrap_failed", exc_info=exc)
            raise BootstrapError("schema bootstrap failed") from exc
        self._state = LifecycleState.SERVING
        logger.info(
            "store_bootstrapped",
            extra={"extra": {"tables": sorted(Base.metadata.tables), "dialect": self.dialect_name}},
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Lease a session wrapped in a single transaction for one operation."""
        if self._state is not LifecycleState.SERVING:
            raise StoreUnavailableError(self._state.value)
        self._active += 1
        self._idle.clear()
        try:
            async with self._sf() as session:
                async with session.begin():
                    yield session
        finally:
            self._active -= 1
            if self._active == 0:
                self._idle.set()

    async def ping(self) -> bool:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))
        return True

    async def shutdown(self) -> None:
        """Drain leased sessions, then dispose the pool. Runs once.

        Never raises: a failed dispose is logged and the store still ends STOPPED
        so the process can exit.
        """
        if self._state in (LifecycleState.DRAINING, LifecycleState.STOPPED):
            logger.warning("store_shutdown_repeated", extra={"extra": {"state": self._state.value}})
            return

        self._state = LifecycleState.DRAINING
        logger.info("store_draining", extra={"extra": {"active_leases": self._active}})
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=self._drain_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "store_drain_timeout",
                extra={"extra": {"active_leases": self._active, "timeout_s": self._drain_timeout_s}},
            )

        try:
            await self._engine.dispose()
        except Exception as exc:
            logger.error("store_dispose_failed", exc_info=exc)
        finally:
            self._state = LifecycleState.STOPPED
        logger.info("store_stopped")
