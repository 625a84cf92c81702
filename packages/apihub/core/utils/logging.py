"""Logging setup for the ingestion core.

Records go to stdout or a file, either as text lines or as one JSON object
per line. Ingestion code attaches its publish context (``publish_id`` and
similar) through ``get_logger``; the JSON formatter lifts such fields into
the record's ``context`` block.
"""

from __future__ import annotations

import functools
import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import Any

DEFAULT_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _exception_context(formatter: logging.Formatter, record: logging.LogRecord) -> dict[str, Any]:
    exc_type, exc_value, _ = record.exc_info
    return {
        "error_type": exc_type.__name__ if exc_type else None,
        "error_message": str(exc_value) if exc_value else None,
        "stack_trace": record.exc_text or formatter.formatException(record.exc_info),
    }


class StructuredJSONFormatter(logging.Formatter):
    """One JSON object per record: ``level``, ``message``, ``timestamp`` and
    a ``context`` block with the call site, exception details and any extra
    fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            context.update(_exception_context(self, record))
        context.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS and not key.startswith("_")
        )

        entry = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "context": context,
        }
        return json.dumps(entry, default=str)


def _make_handler(filename: str | None) -> logging.Handler:
    if filename:
        return logging.FileHandler(filename, encoding="utf-8")
    return logging.StreamHandler(sys.stdout)


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    filename: str | None = None,
    structured: bool = False,
) -> None:
    """Install a single root handler, replacing any configured before.

    Args:
        level: Level name, any case
        format_string: Text format; ignored when ``structured`` is set
        filename: Log file; stdout when omitted
        structured: Emit JSON lines instead of text

    Example:
        >>> configure_logging("debug", structured=True, filename="ingest.jsonl")
    """
    handler = _make_handler(filename)
    if structured:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(format_string or DEFAULT_TEXT_FORMAT))

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


def get_logger(name: str, **context: Any) -> logging.Logger | logging.LoggerAdapter:
    """Module logger, wrapped in an adapter when ``context`` is given.

    The adapter stamps every record with the context fields, e.g.
    ``get_logger(__name__, publish_id=publish_id)``.
    """
    base = logging.getLogger(name)
    if not context:
        return base
    return logging.LoggerAdapter(base, context)


def log_performance(func):
    """Decorator logging each call's duration at DEBUG on the function's module logger."""
    log = logging.getLogger(func.__module__)

    @functools.wraps(func)
    def timed(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            log.debug("%s took %.1fms", func.__qualname__, elapsed_ms)

    return timed
