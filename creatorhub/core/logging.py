"""Logging configuration for creatorhub.

Two output modes, selected by LOG_JSON:

  _ContainerFormatter: human-readable, single-line, for local dev.
    Lines emitted while serving a tenant request name the host, so one
    community's traffic stands out in a shared terminal.  WARNING and
    above carry a [file:line] suffix so access denials and failed
    webhooks point straight at the guard that fired.

  _JsonFormatter: one JSON object per line, for production log
    aggregation.  Request context (request_id, tenant_host, ...) attached
    by RequestContextMiddleware becomes top-level keys, so a single
    tenant's traffic can be filtered with `tenant_host == "..."`.
"""

from __future__ import annotations

import json
import logging
import sys

# Placeholder the request context filter uses outside a request.
_NO_CONTEXT = "-"

_QUIET_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpcore",
    "httpx",
    "sqlalchemy.engine",
    "alembic",
)


def _context_value(record: logging.LogRecord, key: str) -> object | None:
    value = getattr(record, key, None)
    if value is None or value == _NO_CONTEXT:
        return None
    return value


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    ``2024-05-01T10:00:00.123+0000 WARNING  creatorhub.api.community
    grace.creatorhub.localhost  Post denied: ...  [community.py:212]``
    """

    _FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _TENANT_FMT = "%(asctime)s %(levelname)-8s %(name)s %(tenant_host)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        # Milliseconds go before the +0000 offset.
        return f"{base[:-5]}.{int(record.msecs):03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        fmt = self._TENANT_FMT if _context_value(record, "tenant_host") else self._FMT
        if record.levelno >= logging.WARNING:
            fmt += self._LOC_SUFFIX
        self._style._fmt = fmt
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for machine-parseable log output."""

    # Fields that RequestContextMiddleware and the routers may attach.
    _CONTEXT_FIELDS = (
        "request_id",
        "tenant_host",
        "method",
        "path",
        "status_code",
        "duration_ms",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self._CONTEXT_FIELDS:
            value = _context_value(record, key)
            if value is not None:
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. Controlled by LOG_JSON.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep server, HTTP client and ORM chatter out of debug sessions.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
