from __future__ import annotations

import json
import logging
import re
from contextvars import ContextVar
from typing import Any

SENSITIVE_KEYS = {"api_key", "token", "secret", "password"}

# Bound per request by RequestIdMiddleware.
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

_URL_CREDENTIALS = re.compile(r"(://[^:/@]+:)[^@]+@")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            payload["request_id"] = request_id
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload["extra"] = redact_dict(record.extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def redact_url(url: str) -> str:
    """Mask the password part of a connection URL."""
    return _URL_CREDENTIALS.sub(r"\1***@", url)


def redact_dict(data: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_KEYS:
            out[key] = "***"
        elif isinstance(value, dict):
            out[key] = redact_dict(value)
        elif isinstance(value, str) and "://" in value:
            out[key] = redact_url(value)
        else:
            out[key] = value
    return out


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
