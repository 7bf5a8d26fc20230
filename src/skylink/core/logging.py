# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Logging setup for Skylink.

Every link and lookup flow runs inside :func:`correlation_context`, which
tags the records logged during it with a flow ID and the operation name.
Records can also carry ``did`` and ``inbox_id`` through ``extra``; the JSON
formatter emits those as top-level fields so one association can be
followed across repository, messaging and index calls::

    with correlation_context("lookup"):
        logger.info("Resolved record", extra={"did": did, "inbox_id": inbox_id})
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# (correlation_id, operation) of the flow running in this context
_flow: ContextVar[tuple[str, str] | None] = ContextVar("skylink_flow", default=None)

# Association fields lifted out of ``extra`` into JSON output
CONTEXT_FIELDS = ("did", "inbox_id")

NOISY_LOGGERS = ("aiohttp", "asyncio")


def get_correlation_id() -> str | None:
    flow = _flow.get()
    return flow[0] if flow else None


@contextmanager
def correlation_context(operation: str, correlation_id: str | None = None) -> Iterator[str]:
    """Run one flow under a correlation ID.

    Args:
        operation: Flow name shown in log output (``link``, ``lookup``...).
        correlation_id: ID to reuse; a short random one is made if omitted.

    Yields:
        The correlation ID in effect.
    """
    cid = correlation_id or uuid.uuid4().hex[:12]
    token = _flow.set((cid, operation))
    try:
        yield cid
    finally:
        _flow.reset(token)


class CorrelationFilter(logging.Filter):
    """Stamp the current flow's ``correlation_id`` and ``operation`` onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        flow = _flow.get()
        if flow is not None and getattr(record, "correlation_id", None) is None:
            record.correlation_id, record.operation = flow
        return True


def redact(value: bytes | str | None) -> str:
    """Short, stable fingerprint of an opaque value for log lines.

    Signatures and keys are never logged in full.
    """
    if value is None:
        return "<none>"
    if isinstance(value, str):
        value = value.encode("utf-8")
    return f"<{len(value)}B sha256:{hashlib.sha256(value).hexdigest()[:12]}>"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with flow and association fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("correlation_id", "operation", *CONTEXT_FIELDS):
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Single human-readable line; flow records get an ``[operation:id]`` prefix."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(flow)s%(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None)
        record.flow = f"[{getattr(record, 'operation', '-')}:{cid}] " if cid else ""
        return super().format(record)


def configure_logging(
    level: str | int | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Install Skylink's handlers on the root logger.

    Unset arguments come from ``SKYLINK_LOG_LEVEL``, ``SKYLINK_LOG_FORMAT``
    ("json", "text", or auto: JSON unless stderr is a terminal) and
    ``SKYLINK_LOG_FILE``. A log file always gets JSON.
    """
    from .config import get_config

    config = get_config()

    level = level or config.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        log_format = config.log_format.lower()
        json_format = log_format == "json" or (log_format != "text" and not sys.stderr.isatty())

    log_file = config.log_file if log_file is None else log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    handlers[0].setFormatter(JSONFormatter() if json_format else StandardFormatter())
    if log_file:
        handlers.append(logging.FileHandler(log_file))
        handlers[1].setFormatter(JSONFormatter())

    for handler in handlers:
        handler.addFilter(CorrelationFilter())
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
