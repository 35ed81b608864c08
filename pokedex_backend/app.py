"""Application factory: middleware, routers and store lifespan."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.router import router as api_router
from .config import Settings
from .core.errors import BootstrapError, setup_exception_handlers
from .core.lifecycle import Store
from .core.middleware import RequestIdMiddleware, RequestSizeLimitMiddleware
from .db.session import make_engine, make_session_factory
from .logging_utils import redact_url

logger = logging.getLogger("pokedex_backend")


def build_store(settings: Settings) -> Store:
    engine = make_engine(settings)
    return Store(
        engine,
        make_session_factory(engine),
        drain_timeout_s=settings.shutdown_drain_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Bootstrap the schema before serving; drain and close the pool after.

    uvicorn stops accepting connections and finishes in-flight requests
    before the code after ``yield`` runs. A BootstrapError propagates and
    uvicorn aborts startup.
    """
    settings: Settings = app.state.settings
    store = build_store(settings)
    app.state.store = store

    try:
        await store.bootstrap()
    except BootstrapError:
        await store.shutdown()
        raise
    logger.info(
        "service_started",
        extra={"extra": {"env": settings.env, "database_url": redact_url(settings.async_database_url)}},
    )
    try:
        yield
    finally:
        logger.info("service_shutting_down")
        await store.shutdown()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="Pokedex Capture Service", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings

    setup_exception_handlers(app)

    # Last added runs first.
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    return app
