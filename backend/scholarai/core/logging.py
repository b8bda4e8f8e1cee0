"""Logging utilities for ScholarAI."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

_DEFAULT_LEVEL = os.environ.get("SCHOLAR_LOG_LEVEL", "INFO")
_DEFAULT_FORMAT = os.environ.get("SCHOLAR_LOG_FORMAT", "json")
_CONTEXT_PREFIX = "ctx_"

# HTTP client used by the OpenAI SDK logs every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``log_context`` fields are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key.startswith(_CONTEXT_PREFIX):
                payload[key[len(_CONTEXT_PREFIX) :]] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def log_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra=`` mapping whose fields end up in the JSON line."""
    return {f"{_CONTEXT_PREFIX}{key}": value for key, value in fields.items()}


def configure_logging(level: str | int = _DEFAULT_LEVEL, fmt: str = _DEFAULT_FORMAT) -> None:
    """Configure the root logger; ``fmt`` is ``json`` or ``text``."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "text":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())
    root.handlers = [handler]
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def get_logger(name: str = "scholarai") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "get_logger", "log_context"]
