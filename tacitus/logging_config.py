"""Log formatting for the API process and the command-line loader.

Both formatters tag each line with the current request ID (API) and the
place name being geocoded and stored, when there is one.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone

from tacitus.services.request_context import get_place, get_request_id

# Every LogRecord carries these; anything else was passed via ``extra=``.
_BUILTIN_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _utc(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _traceback(record: logging.LogRecord) -> str | None:
    if record.exc_info and record.exc_info[0] is not None:
        return "".join(traceback.format_exception(*record.exc_info))
    return None


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        entry: dict = {
            "timestamp": _utc(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }
        for key, value in (("request_id", get_request_id()), ("place", get_place())):
            if value:
                entry[key] = value

        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _BUILTIN_ATTRS and not key.startswith("_")
        )

        exc = _traceback(record)
        if exc:
            entry["exception"] = exc
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """``<ts> LEVEL [rid] logger (place) - message`` for a terminal."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        request_id = get_request_id()
        place = get_place()

        line = "{ts} {level:<8} {rid}{name}{place} - {msg}".format(
            ts=_utc(record).strftime("%Y-%m-%d %H:%M:%S"),
            level=record.levelname,
            rid=f"[{request_id[:12]}] " if request_id else "",
            name=record.name,
            place=f" ({place})" if place else "",
            msg=record.message,
        )

        exc = _traceback(record)
        return f"{line}\n{exc}" if exc else line


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Install a single stderr handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Called again on reload and by the CLI after Alembic; never stack handlers.
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    formatter = JSONFormatter() if log_format.lower() == "json" else TextFormatter()
    handler.setFormatter(formatter)
    root.addHandler(handler)
