"""Captured pokemon endpoints."""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.errors import PayloadTooLargeError, PayloadValidationError
from ..repositories.captured_repo import CapturedRecord, SQLAlchemyCapturedPokemonRepository
from ..services.capture_service import CaptureService

router = APIRouter(prefix="/api/captured")

_PATH_ID = re.compile(r"[0-9]+")


def _get_capture_service(request: Request) -> CaptureService:
    return CaptureService(SQLAlchemyCapturedPokemonRepository(request.app.state.store))


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _listed(record: CapturedRecord) -> dict[str, Any]:
    return {**record.payload, "captured_at": _timestamp(record.captured_at)}


def _parse_path_id(raw: str) -> int:
    if not _PATH_ID.fullmatch(raw):
        raise PayloadValidationError("Invalid pokemon id.")
    return int(raw)


def _reject_constant(token: str) -> Any:
    # NaN/Infinity are not JSON and cannot be rendered back out.
    raise PayloadValidationError("Request body must be valid JSON.")


async def _read_body(request: Request) -> bytes:
    """Read the body, enforcing the size cap on chunked uploads too."""
    max_bytes = request.app.state.settings.max_request_bytes
    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise PayloadTooLargeError(max_bytes)
        chunks.append(chunk)
    return b"".join(chunks)


@router.get("")
async def list_captured(request: Request):
    svc = _get_capture_service(request)
    records = await svc.list()
    return [_listed(r) for r in records]


@router.post("")
async def capture(request: Request):
    raw = await _read_body(request)
    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PayloadValidationError("Request body must be valid JSON.") from exc

    svc = _get_capture_service(request)
    result = await svc.capture(body)
    if result.status == "captured":
        return JSONResponse(
            status_code=201,
            content={"status": "captured", "pokemon": result.pokemon},
        )
    return JSONResponse(
        status_code=200,
        content={
            "status": "already_captured",
            "pokemon": result.pokemon,
            "captured_at": _timestamp(result.captured_at),
        },
    )


@router.delete("/{pokemon_id}")
async def release(pokemon_id: str, request: Request):
    svc = _get_capture_service(request)
    removed = await svc.release(_parse_path_id(pokemon_id))
    return {"status": "released", "pokemon": removed.payload}
