from __future__ import annotations

import json
import logging

from pokedex_backend.logging_utils import JsonFormatter, redact_dict, redact_url, request_id_var


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("pokedex_backend.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_redact_dict_masks_sensitive_keys():
    out = redact_dict({"password": "hunter2", "nested": {"token": "abc"}, "pokemon_id": 25})
    assert out == {"password": "***", "nested": {"token": "***"}, "pokemon_id": 25}


def test_redact_url_masks_password():
    assert redact_url("postgresql+asyncpg://ash:pallet@db:5432/pk") == "postgresql+asyncpg://ash:***@db:5432/pk"
    assert redact_url("sqlite+aiosqlite:///./x.db") == "sqlite+aiosqlite:///./x.db"


def test_json_formatter_includes_extra_and_request_id():
    token = request_id_var.set("req-1")
    try:
        line = JsonFormatter().format(
            _record("store_fault", extra={"operation": "insert", "url": "postgres://a:b@h/d"})
        )
    finally:
        request_id_var.reset(token)
    payload = json.loads(line)
    assert payload["message"] == "store_fault"
    assert payload["request_id"] == "req-1"
    assert payload["extra"] == {"operation": "insert", "url": "postgres://a:***@h/d"}


def test_json_formatter_without_context():
    payload = json.loads(JsonFormatter().format(_record("service_started")))
    assert "request_id" not in payload
    assert payload["level"] == "INFO"
