"""Notification persistence helpers."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.models import Notification


class NotificationsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, notification_id: int) -> Notification | None:
        return await self._session.get(Notification, notification_id)

    async def list_for_user(self, user_id: int, *, limit: int = 100) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def add(
        self,
        *,
        user_id: int,
        title: str,
        body: str,
        related_entity_type: str | None = None,
        related_entity_id: int | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            body=body,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
        )
        self._session.add(notification)
        await self._session.flush()
        return notification


__all__ = ["NotificationsRepository"]
