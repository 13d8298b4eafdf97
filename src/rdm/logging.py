"""Logging setup for the rdm CLI.

Records always go to stderr; stdout carries command output only. By default
each record is one readable line. With ``RDM_LOG_FORMAT=json`` each record is
a JSON object, and the fields passed through ``extra=`` (request ids, paths,
issue numbers) are kept under ``"context"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, Literal, TextIO

LogFormat = Literal["text", "json"]

TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"

# Whatever a bare LogRecord carries; anything beyond this came in via `extra=`.
_BUILTIN_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the `extra=` fields attached to a record."""

    return {
        key: value
        for key, value in vars(record).items()
        if key not in _BUILTIN_RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = record_context(record)
        if context:
            payload["context"] = context

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    level: str, *, fmt: LogFormat = "text", stream: TextIO | None = None
) -> None:
    """Send root logging to stderr at `level`, replacing any earlier setup."""

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
