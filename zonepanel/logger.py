"""Structured key=value logging to standard error with a configurable level."""

from __future__ import annotations

import json
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class _Level(IntEnum):
    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8


_LEVELS = {
    "debug": _Level.DEBUG,
    "info": _Level.INFO,
    "warn": _Level.WARN,
    "error": _Level.ERROR,
}


class _Logger:
    """Writes one text line per record to the current standard error."""

    def __init__(self, threshold: _Level = _Level.INFO) -> None:
        self.threshold = threshold

    def emit(self, level: _Level, msg: str, fields: dict[str, Any]) -> None:
        if level < self.threshold:
            return
        stamp = datetime.now().astimezone().isoformat(timespec="milliseconds")
        parts = [f"time={stamp}", f"level={level.name}", f"msg={_quote(msg)}"]
        parts.extend(f"{key}={_quote(_text(value))}" for key, value in fields.items())
        sys.stderr.write(" ".join(parts) + "\n")
        sys.stderr.flush()


def _text(value: Any) -> str:
    if isinstance(value, BaseException):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def _quote(text: str) -> str:
    needs_quotes = text == "" or any(
        ch.isspace() or ch in '"=' or not ch.isprintable() for ch in text
    )
    return json.dumps(text, ensure_ascii=False) if needs_quotes else text


_logger = _Logger()


def init(level: str) -> None:
    """Set the minimum level: debug, info, warn or error (anything else means info)."""
    _logger.threshold = _LEVELS.get(level, _Level.INFO)


def info(msg: str, **kwargs: Any) -> None:
    """Log at info level with key-value fields."""
    _logger.emit(_Level.INFO, msg, kwargs)


def warn(msg: str, **kwargs: Any) -> None:
    """Log at warn level with key-value fields."""
    _logger.emit(_Level.WARN, msg, kwargs)


def error(msg: str, **kwargs: Any) -> None:
    """Log at error level with key-value fields."""
    _logger.emit(_Level.ERROR, msg, kwargs)


def debug(msg: str, **kwargs: Any) -> None:
    """Log at debug level with key-value fields."""
    _logger.emit(_Level.DEBUG, msg, kwargs)


def fatal(msg: str, **kwargs: Any) -> None:
    """Log at error level, then exit with status 1."""
    _logger.emit(_Level.ERROR, msg, kwargs)
    raise SystemExit(1)