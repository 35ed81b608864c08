from __future__ import annotations

import logging
import sys

import uvicorn

from .app import create_app
from .config import Settings
from .logging_utils import configure_logging

logger = logging.getLogger("pokedex_backend.main")


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    try:
        settings.validate()
    except ValueError as exc:
        logger.error("invalid_configuration", extra={"extra": {"error": str(exc)}})
        sys.exit(1)

    # uvicorn handles SIGINT/SIGTERM: stop accepting, drain requests, run lifespan shutdown.
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
        lifespan="on",
        timeout_graceful_shutdown=settings.shutdown_drain_timeout_s,
    )


if __name__ == "__main__":
    main()
