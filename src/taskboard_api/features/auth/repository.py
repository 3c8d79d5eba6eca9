"""Persistence for refresh-token devices and password resets."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.db import utc_now
from taskboard_api.models import PasswordReset, UserDevice


class AuthRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_device(
        self,
        *,
        user_id: int,
        refresh_token: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> UserDevice:
        device = UserDevice(
            user_id=user_id,
            refresh_token=refresh_token,
            ip_address=ip_address,
            user_agent=user_agent[:512] if user_agent else None,
        )
        self._session.add(device)
        await self._session.flush()
        return device

    async def get_active_device(self, refresh_token: str) -> UserDevice | None:
        stmt = select(UserDevice).where(
            UserDevice.refresh_token == refresh_token,
            UserDevice.is_revoked.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke_device(self, refresh_token: str) -> int:
        stmt = (
            update(UserDevice)
            .where(UserDevice.refresh_token == refresh_token, UserDevice.is_revoked.is_(False))
            .values(is_revoked=True, revoked_at=utc_now())
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def add_password_reset(
        self, *, user_id: int, token: str, expires_at: datetime
    ) -> PasswordReset:
        reset = PasswordReset(user_id=user_id, token=token, expires_at=expires_at)
        self._session.add(reset)
        await self._session.flush()
        return reset

    async def get_password_reset(self, token: str) -> PasswordReset | None:
        result = await self._session.execute(
            select(PasswordReset).where(PasswordReset.token == token)
        )
        return result.scalar_one_or_none()


__all__ = ["AuthRepository"]
