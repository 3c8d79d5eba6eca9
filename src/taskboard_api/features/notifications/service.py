"""Recipient-only access to in-app notifications."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import NotFound
from taskboard_api.core.rbac import can_mark_notification_seen
from taskboard_api.features.audit import queue_audit
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.models import Notification, NotificationStatus, User

from .repository import NotificationsRepository

logger = logging.getLogger(__name__)


class NotificationsService:
    def __init__(self, *, session: AsyncSession, events: EventDispatcher) -> None:
        self._session = session
        self._events = events
        self._repo = NotificationsRepository(session)

    async def list_for_user(self, *, actor: User) -> list[Notification]:
        return await self._repo.list_for_user(actor.id)

    async def mark_seen(self, *, actor: User, notification_id: int) -> Notification:
        """Flip UNSEEN to SEEN; repeating the call leaves it SEEN."""
        notification = await self._repo.get(notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        decision = can_mark_notification_seen(actor.id, notification.user_id)
        if not decision:
            queue_audit(
                self._events,
                "MARK_NOTIFICATION_SEEN_DENIED",
                user_id=actor.id,
                level="warn",
                details={"notification_id": notification_id, "reason": decision.reason},
            )
        decision.enforce()

        if notification.status != NotificationStatus.SEEN:
            notification.status = NotificationStatus.SEEN
            await self._session.commit()
            logger.info(
                "notification.seen",
                extra=log_context(user_id=actor.id, notification_id=notification_id),
            )
        return notification


__all__ = ["NotificationsService"]
