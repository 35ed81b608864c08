"""Domain errors and their FastAPI exception handlers."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..logging_utils import request_id_var

logger = logging.getLogger("pokedex_backend.errors")


class CaptureServiceError(Exception):
    """Base exception for errors surfaced to API callers."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "internal_error",
        details: Any = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.headers = headers
        super().__init__(message)


class PayloadValidationError(CaptureServiceError):
    """Malformed input; rejected before any store access."""

    def __init__(self, message: str = "Invalid pokemon payload.", details: Any = None):
        super().__init__(
            message,
            status_code=status.HTTP_400_BAD_REQUEST,
            code="validation_error",
            details=details,
        )


class PayloadTooLargeError(CaptureServiceError):
    def __init__(self, max_bytes: int):
        super().__init__(
            "Request body too large.",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            code="payload_too_large",
        )
        self.max_bytes = max_bytes


class PokemonNotFoundError(CaptureServiceError):
    def __init__(self, pokemon_id: int):
        super().__init__(
            "Pokemon not found.",
            status_code=status.HTTP_404_NOT_FOUND,
            code="not_found",
        )
        self.pokemon_id = pokemon_id


class StoreError(CaptureServiceError):
    """Unexpected store fault. The cause is chained, never sent to the caller."""

    def __init__(self, operation: str, pokemon_id: int | None = None):
        super().__init__("Storage operation failed.", code="store_error")
        self.operation = operation
        self.pokemon_id = pokemon_id


class CaptureReconciliationError(CaptureServiceError):
    """Insert reported a conflict but the existing row was gone on re-read.

    Happens when a release races the duplicate capture; a retry resolves it.
    """

    def __init__(self, pokemon_id: int):
        super().__init__(
            "Pokemon already existed but could not be retrieved. Please retry.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="capture_conflict_unresolved",
            headers={"Retry-After": "1"},
        )
        self.pokemon_id = pokemon_id


class StoreUnavailableError(CaptureServiceError):
    def __init__(self, state: str):
        super().__init__(
            "Service is shutting down.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="store_unavailable",
        )
        self.state = state


class BootstrapError(Exception):
    """Schema bootstrap failed; the process must not serve traffic."""


def request_id_for(request: Request) -> str | None:
    """Request id of the current request, also outside RequestIdMiddleware.

    The generic handler runs in ServerErrorMiddleware after the context var
    was reset; the id is still on the shared ``request.state``.
    """
    return (
        request_id_var.get()
        or getattr(request.state, "request_id", None)
        or request.headers.get("X-Request-ID")
    )


def error_body(message: str, details: Any = None, request_id: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "status": "error",
        "message": message,
        "request_id": request_id or request_id_var.get(),
    }
    if details is not None:
        body["details"] = details
    return body


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(CaptureServiceError)
    async def capture_service_error_handler(
        request: Request, exc: CaptureServiceError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                exc_info=exc.__cause__ or exc,
                extra={
                    "extra": {
                        "code": exc.code,
                        "path": request.url.path,
                        "method": request.method,
                        "operation": getattr(exc, "operation", None),
                        "pokemon_id": getattr(exc, "pokemon_id", None),
                    }
                },
            )
        else:
            logger.info(
                "request_rejected",
                extra={"extra": {"code": exc.code, "path": request.url.path}},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.details),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            exc_info=exc,
            extra={"extra": {"path": request.url.path, "method": request.method}},
        )
        request_id = request_id_for(request)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error.", request_id=request_id),
            headers={"X-Request-ID": request_id} if request_id else None,
        )

