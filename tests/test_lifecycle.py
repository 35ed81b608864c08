"""Store lifecycle: bootstrap, leases, drain-then-close."""

from __future__ import annotations

import asyncio
import logging

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine

from pokedex_backend.app import build_store, create_app
from pokedex_backend.config import Settings
from pokedex_backend.core.errors import BootstrapError, StoreUnavailableError
from pokedex_backend.core.lifecycle import LifecycleState, Store
from pokedex_backend.db.session import make_engine, make_session_factory

pytestmark = pytest.mark.asyncio


def _unreachable_settings(tmp_path) -> Settings:
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing-dir' / 'x.db'}")


async def test_bootstrap_moves_to_serving(settings):
    store = build_store(settings)
    assert store.state is LifecycleState.STARTING
    await store.bootstrap()
    assert store.state is LifecycleState.SERVING
    assert await store.ping() is True
    await store.shutdown()


async def test_bootstrap_is_idempotent_across_restarts(settings):
    first = build_store(settings)
    await first.bootstrap()
    async with first.session() as session:
        await session.execute(
            text("INSERT INTO captured_pokemon (pokemon_id, data) VALUES (25, '{\"id\": 25, \"name\": \"pikachu\"}')")
        )
    await first.shutdown()

    second = build_store(settings)
    await second.bootstrap()
    async with second.session() as session:
        count = (await session.execute(text("SELECT COUNT(*) FROM captured_pokemon"))).scalar_one()
    assert count == 1
    await second.shutdown()


async def test_bootstrap_failure_is_fatal(tmp_path):
    store = build_store(_unreachable_settings(tmp_path))
    with pytest.raises(BootstrapError):
        await store.bootstrap()
    assert store.state is LifecycleState.STARTING
    with pytest.raises(StoreUnavailableError):
        async with store.session():
            pass
    await store.shutdown()
    assert store.state is LifecycleState.STOPPED


async def test_app_refuses_to_start_on_bootstrap_failure(tmp_path):
    app = create_app(_unreachable_settings(tmp_path))
    with pytest.raises(BootstrapError):
        async with app.router.lifespan_context(app):
            pass
    assert app.state.store.state is LifecycleState.STOPPED


async def test_no_leases_before_bootstrap(settings):
    store = build_store(settings)
    with pytest.raises(StoreUnavailableError):
        async with store.session():
            pass
    await store.shutdown()


async def test_shutdown_waits_for_active_lease(settings):
    store = build_store(settings)
    await store.bootstrap()
    release = asyncio.Event()
    leased = asyncio.Event()

    async def hold_lease():
        async with store.session() as session:
            leased.set()
            await release.wait()
            await session.execute(text("SELECT 1"))

    holder = asyncio.create_task(hold_lease())
    await leased.wait()
    assert store.active_leases == 1

    stopper = asyncio.create_task(store.shutdown())
    await asyncio.sleep(0.05)
    assert store.state is LifecycleState.DRAINING
    assert not stopper.done()

    with pytest.raises(StoreUnavailableError):
        async with store.session():
            pass

    release.set()
    await holder
    await stopper
    assert store.active_leases == 0
    assert store.state is LifecycleState.STOPPED


async def test_drain_timeout_still_stops(settings):
    store = build_store(Settings(database_url=settings.database_url, shutdown_drain_timeout_s=0.05))
    await store.bootstrap()
    release = asyncio.Event()
    leased = asyncio.Event()

    async def hold_lease():
        async with store.session():
            leased.set()
            await release.wait()

    holder = asyncio.create_task(hold_lease())
    await leased.wait()
    await store.shutdown()
    assert store.state is LifecycleState.STOPPED
    release.set()
    await holder


async def test_shutdown_runs_once(settings, caplog):
    store = build_store(settings)
    await store.bootstrap()
    await store.shutdown()
    with caplog.at_level(logging.WARNING, logger="pokedex_backend.lifecycle"):
        await store.shutdown()
    assert store.state is LifecycleState.STOPPED
    assert any(r.getMessage() == "store_shutdown_repeated" for r in caplog.records)


async def test_dispose_failure_is_logged_and_stops(settings, monkeypatch, caplog):
    engine = make_engine(settings)
    store = Store(engine, make_session_factory(engine))
    await store.bootstrap()

    async def broken_dispose(self, close=True):
        raise RuntimeError("pool close failed")

    monkeypatch.setattr(AsyncEngine, "dispose", broken_dispose)
    with caplog.at_level(logging.ERROR, logger="pokedex_backend.lifecycle"):
        await store.shutdown()
    assert store.state is LifecycleState.STOPPED
    assert any(r.getMessage() == "store_dispose_failed" for r in caplog.records)

    monkeypatch.undo()
    await engine.dispose()


async def test_driver_errors_reach_observer(store, caplog):
    with caplog.at_level(logging.WARNING, logger="pokedex_backend.db"):
        with pytest.raises(OperationalError):
            async with store.session() as session:
                await session.execute(text("SELECT * FROM no_such_table"))
    assert any(r.getMessage() == "store_driver_error" for r in caplog.records)
    # The pool keeps serving after the failure.
    assert await store.ping() is True


async def test_lifespan_stops_store_on_exit(settings):
    app = create_app(settings)
    async with app.router.lifespan_context(app):
        assert app.state.store.state is LifecycleState.SERVING
    assert app.state.store.state is LifecycleState.STOPPED
