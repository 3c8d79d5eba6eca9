"""Logging configuration and helpers for the Taskboard API.

This module configures console-style logging for the entire process and exposes
helpers for:

* binding a request-scoped correlation ID and client address,
* building consistent `extra` payloads for structured logs, and
* wiring the dedicated audit logger to a rotating file.

Everything uses the standard :mod:`logging` library. The only customization is
the formatter, which renders one human-readable line per log record, including
timestamp, level, logger name, correlation ID, and any `extra` fields as
``key=value`` pairs.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import Any

from taskboard_api.settings import Settings

# ---------------------------------------------------------------------------
# Context and constants
# ---------------------------------------------------------------------------

# Request-scoped values, set/cleared by RequestContextMiddleware.
_CORRELATION_ID: ContextVar[str | None] = ContextVar("taskboard_correlation_id", default=None)
_CLIENT_IP: ContextVar[str | None] = ContextVar("taskboard_client_ip", default=None)

AUDIT_LOGGER_NAME = "taskboard.audit"
AUDIT_LOG_MAX_BYTES = 5 * 1024 * 1024
AUDIT_LOG_BACKUPS = 5

# Attributes that are already handled by logging and should not be copied into
# the extra key=value list.
_STANDARD_ATTRS: set[str] = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "correlation_id",
    "taskName",
    "color_message",
}

_CONFIGURED_FLAG = "_taskboard_configured"


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class ConsoleLogFormatter(logging.Formatter):
    """Render log records as single-line console output.

    Example line:

        2025-11-27T02:57:00.302Z INFO  taskboard_api.features.projects.service
        [cid=1234abcd] project.create.success project_id=3 workspace_id=1
    """

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def __init__(self) -> None:
        fmt = "%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s"
        super().__init__(fmt=fmt, datefmt=self._time_format)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        base = dt.strftime(datefmt or self._time_format)
        return f"{base}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        cid = getattr(record, "correlation_id", None) or _CORRELATION_ID.get() or "-"
        record.correlation_id = cid

        base = super().format(record)

        extras: list[str] = []
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            extras.append(f"{key}={_format_extra_value(value)}")

        if extras:
            return f"{base} " + " ".join(extras)
        return base


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure root logging for the Taskboard API process.

    Installs a single console-style StreamHandler and sets the root level from
    ``settings.logging_level`` (env: ``TASKBOARD_LOGGING_LEVEL``). Common
    third-party loggers propagate into the root logger so that all logs share
    one format. When ``settings.audit_log_path`` is set the audit logger also
    writes to a size-rotated file.
    """
    root_logger = logging.getLogger()

    level_name = settings.logging_level.upper()
    level = getattr(logging, level_name, logging.INFO)

    if getattr(root_logger, _CONFIGURED_FLAG, False):
        root_logger.setLevel(level)
        configure_audit_logger(settings)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleLogFormatter())

    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    for name in (
        "uvicorn",
        "uvicorn.error",
        "uvicorn.access",
        "alembic",
        "alembic.runtime.migration",
        "sqlalchemy",
        "httpx",
    ):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True

    configure_audit_logger(settings)
    setattr(root_logger, _CONFIGURED_FLAG, True)


def configure_audit_logger(settings: Settings) -> logging.Logger:
    """Attach a rotating file handler to the audit logger when configured."""

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.setLevel(logging.INFO)
    path = settings.audit_log_path
    if path is None:
        return audit_logger

    for existing in audit_logger.handlers:
        if isinstance(existing, RotatingFileHandler) and existing.baseFilename == str(path):
            return audit_logger

    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        path,
        maxBytes=AUDIT_LOG_MAX_BYTES,
        backupCount=AUDIT_LOG_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(ConsoleLogFormatter())
    audit_logger.addHandler(file_handler)
    return audit_logger


def flush_audit_logger() -> None:
    """Flush and close the audit logger's handlers (called on shutdown)."""

    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    for handler in list(audit_logger.handlers):
        handler.flush()
        handler.close()
        audit_logger.removeHandler(handler)


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------


def bind_request_context(correlation_id: str | None, client_ip: str | None = None) -> None:
    """Bind request-scoped values to the logging context."""
    _CORRELATION_ID.set(correlation_id)
    _CLIENT_IP.set(client_ip)


def clear_request_context() -> None:
    """Clear the request-scoped logging context."""
    _CORRELATION_ID.set(None)
    _CLIENT_IP.set(None)


def current_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def current_client_ip() -> str | None:
    return _CLIENT_IP.get()


def log_context(
    *,
    workspace_id: int | None = None,
    project_id: int | None = None,
    task_id: int | None = None,
    user_id: int | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a consistent `extra` payload for structured logs.

    Example:
        logger.info(
            "project.create.success",
            extra=log_context(workspace_id=ws_id, project_id=project.id, user_id=actor.id),
        )
    """
    ctx: dict[str, Any] = {}

    if workspace_id is not None:
        ctx["workspace_id"] = workspace_id
    if project_id is not None:
        ctx["project_id"] = project_id
    if task_id is not None:
        ctx["task_id"] = task_id
    if user_id is not None:
        ctx["user_id"] = user_id

    for key, value in extra.items():
        ctx[key] = value

    return ctx


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _format_extra_value(value: Any) -> str:
    """Format an `extra` value for console output."""
    if isinstance(value, (int, float, bool)):
        return str(value)
    if value is None:
        return "null"
    return str(value)


__all__ = [
    "AUDIT_LOGGER_NAME",
    "ConsoleLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "configure_audit_logger",
    "current_client_ip",
    "current_correlation_id",
    "flush_audit_logger",
    "log_context",
    "setup_logging",
]
