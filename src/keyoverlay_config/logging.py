"""Structured logging for keyoverlay-config.

The terminal belongs to the Textual UI, so log records go to a file
instead: ``/tmp/keyoverlay-config.log`` unless ``KEYOVERLAY_CONFIG_LOG``
points elsewhere. Each record is one JSON line; the file rotates at
``MAX_BYTES`` and keeps ``BACKUP_COUNT`` old copies.

Callers attach structured fields with ``log_context``::

    _log.warning("Rejected port input", extra={"context": log_context(
        field="web_port", text_preview=text,
    )})

``keyoverlay-config --log-tail N`` reads the file back through
``read_log_tail`` and ``parse_log_line``.
"""

from __future__ import annotations

import collections
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any


EDITOR_LOG = os.environ.get("KEYOVERLAY_CONFIG_LOG", "/tmp/keyoverlay-config.log")

MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

PREVIEW_CHARS = 80


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, with ``context`` and ``exception`` when present."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S")
        entry: dict[str, Any] = {
            "timestamp": f"{stamp}.{int(record.msecs):03d}",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


_configured: set[str] = set()


def get_logger(
    name: str,
    log_file: str = EDITOR_LOG,
    level: int = logging.DEBUG,
) -> logging.Logger:
    """Logger *name* writing JSON lines to *log_file*.

    The handler is attached once per (name, file) pair and opens the file
    on the first record, so module-level ``get_logger`` calls are free.
    """
    logger = logging.getLogger(name)
    key = f"{name}:{log_file}"
    if key in _configured:
        return logger

    handler = RotatingFileHandler(
        log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT,
        encoding="utf-8", delay=True,
    )
    handler.setFormatter(_JsonFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    _configured.add(key)
    return logger


def log_context(
    *,
    path: str = "",
    field: str = "",
    text_preview: str = "",
    **extra: Any,
) -> dict[str, Any]:
    """Context dict for ``extra={"context": ...}``. Empty fields are left out."""
    ctx: dict[str, Any] = {}
    if path:
        ctx["path"] = path
    if field:
        ctx["field"] = field
    if text_preview:
        ctx["text_preview"] = text_preview[:PREVIEW_CHARS]
    ctx.update(extra)
    return ctx


def parse_log_line(line: str) -> dict[str, Any] | None:
    line = line.strip()
    if not line:
        return None
    try:
        return json.loads(line)
    except ValueError:
        return None


def read_log_tail(path: str = EDITOR_LOG, lines: int = 50) -> list[str]:
    """Last *lines* lines of *path*; empty if the file is missing or unreadable."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            tail = collections.deque(f, maxlen=lines)
    except OSError:
        return []
    return [line.rstrip("\n") for line in tail]
