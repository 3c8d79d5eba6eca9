"""Audit trail: a dedicated log stream plus an ``audit_logs`` row per entry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import AUDIT_LOGGER_NAME, current_client_ip, log_context
from taskboard_api.infra.events import Event, EventDispatcher
from taskboard_api.models import AuditLog

AUDIT_EVENT = "audit.record"

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class AuditRecorder:
    """Write audit entries; failures are logged and never raised."""

    def __init__(self, *, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        level: str,
        user_id: int | None,
        ip: str | None,
        action: str,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        normalized = level.lower()
        audit_logger.log(
            _LEVELS.get(normalized, logging.INFO),
            action,
            extra=log_context(user_id=user_id, ip=ip, details=dict(details or {})),
        )
        try:
            async with self._session_factory() as session:
                session.add(
                    AuditLog(
                        level=normalized,
                        user_id=user_id,
                        ip_address=ip,
                        action=action,
                        details=dict(details or {}),
                    )
                )
                await session.commit()
        except SQLAlchemyError:
            logger.exception("audit.persist.failed", extra=log_context(action=action))

    async def handle(self, event: Event) -> None:
        payload = event.payload
        await self.record(
            payload.get("level", "info"),
            payload.get("user_id"),
            payload.get("ip"),
            payload["action"],
            payload.get("details"),
        )

    def register(self, events: EventDispatcher) -> None:
        events.subscribe(AUDIT_EVENT, self.handle)


def queue_audit(
    events: EventDispatcher,
    action: str,
    *,
    user_id: int | None = None,
    level: str = "info",
    details: Mapping[str, Any] | None = None,
) -> None:
    """Queue an audit entry, capturing the caller address from the request context."""

    events.emit(
        AUDIT_EVENT,
        {
            "level": level,
            "user_id": user_id,
            "ip": current_client_ip(),
            "action": action,
            "details": dict(details or {}),
        },
    )


__all__ = ["AUDIT_EVENT", "AuditRecorder", "queue_audit"]
