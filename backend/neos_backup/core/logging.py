"""Logging utilities for the backup reader."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

from neos_backup.core.errors import BackupReaderError

_DEFAULT_LEVEL = os.environ.get("NEOSBK_LOG_LEVEL", "WARNING")
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Attributes passed through ``extra`` with a ``ctx_`` prefix are copied into
    the payload as-is. Reader errors attached as ``exc_info`` are also emitted
    in structured form under ``error``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            exc = record.exc_info[1]
            if isinstance(exc, BackupReaderError):
                payload["error"] = exc.to_dict()
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update({key: value for key, value in vars(record).items() if key.startswith("ctx_")})
        return orjson.dumps(payload, default=str).decode("utf-8")


def error_context(exc: BackupReaderError, **fields: Any) -> dict[str, Any]:
    """Build an ``extra`` mapping describing a reader error."""
    context = {f"ctx_{key}": value for key, value in fields.items()}
    context["ctx_kind"] = exc.kind
    if exc.blob_hash is not None:
        context["ctx_blob"] = exc.blob_hash
    if exc.uri is not None:
        context.setdefault("ctx_uri", exc.uri)
    return context


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool = True) -> None:
    """Route library logs to stderr, as JSON lines unless ``use_json`` is off."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else logging.Formatter(_TEXT_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def get_logger(name: str = "neos_backup") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "error_context", "get_logger"]
