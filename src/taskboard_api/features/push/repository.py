"""Push subscription persistence helpers."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.models import PushSubscription


class PushSubscriptionsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, *, user_id: int, endpoint: str) -> PushSubscription | None:
        stmt = select(PushSubscription).where(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> list[PushSubscription]:
        stmt = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def upsert(
        self, *, user_id: int, endpoint: str, p256dh: str, auth: str
    ) -> PushSubscription:
        subscription = await self.get(user_id=user_id, endpoint=endpoint)
        if subscription is None:
            subscription = PushSubscription(
                user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth
            )
            self._session.add(subscription)
        else:
            subscription.p256dh = p256dh
            subscription.auth = auth
        await self._session.flush()
        return subscription

    async def delete_by_endpoint(self, *, user_id: int, endpoint: str) -> int:
        result = await self._session.execute(
            delete(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        return result.rowcount or 0

    async def delete(self, subscription_id: int) -> None:
        await self._session.execute(
            delete(PushSubscription).where(PushSubscription.id == subscription_id)
        )


__all__ = ["PushSubscriptionsRepository"]
