"""Test fixtures — temp-file SQLite store via aiosqlite."""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pokedex_backend.app import build_store, create_app
from pokedex_backend.config import Settings
from pokedex_backend.repositories.captured_repo import SQLAlchemyCapturedPokemonRepository
from pokedex_backend.services.capture_service import CaptureService


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="dev",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'pokedex-test.db'}",
        cors_origins_raw="http://localhost:5173",
        shutdown_drain_timeout_s=2.0,
    )


@pytest_asyncio.fixture
async def store(settings):
    st = build_store(settings)
    await st.bootstrap()
    yield st
    await st.shutdown()


@pytest_asyncio.fixture
async def repo(store):
    return SQLAlchemyCapturedPokemonRepository(store)


@pytest_asyncio.fixture
async def service(repo):
    return CaptureService(repo)


@pytest_asyncio.fixture
async def app_and_client(settings):
    app = create_app(settings)
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield app, c


@pytest_asyncio.fixture
async def client(app_and_client):
    _, c = app_and_client
    return c


def pikachu(**extra) -> dict:
    return {"id": 25, "name": "pikachu", **extra}
