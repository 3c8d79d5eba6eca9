"""Register and remove a user's push subscriptions."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.models import PushSubscription, User

from .repository import PushSubscriptionsRepository

logger = logging.getLogger(__name__)


class PushService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._repo = PushSubscriptionsRepository(session)

    async def subscribe(
        self, *, actor: User, endpoint: str, p256dh: str, auth: str
    ) -> PushSubscription:
        user_id = actor.id
        try:
            subscription = await self._repo.upsert(
                user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth
            )
            await self._session.commit()
        except IntegrityError:
            # Concurrent subscribe for the same endpoint; keep the stored row.
            await self._session.rollback()
            subscription = await self._repo.upsert(
                user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth
            )
            await self._session.commit()
        logger.info("push.subscribe.success", extra=log_context(user_id=user_id))
        return subscription

    async def unsubscribe(self, *, actor: User, endpoint: str) -> bool:
        removed = await self._repo.delete_by_endpoint(user_id=actor.id, endpoint=endpoint)
        await self._session.commit()
        logger.info("push.unsubscribe", extra=log_context(user_id=actor.id, removed=removed))
        return removed > 0


__all__ = ["PushService"]
