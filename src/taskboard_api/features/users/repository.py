"""User persistence helpers."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.models import User


def normalise_email(value: str) -> str:
    return value.strip().lower()


class UsersRepository:
    """Query helpers for user accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == normalise_email(email))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Iterable[int]) -> list[User]:
        ids = sorted(set(user_ids))
        if not ids:
            return []
        result = await self._session.execute(select(User).where(User.id.in_(ids)))
        return list(result.scalars().all())

    async def create(self, *, name: str, email: str, password_hash: str) -> User:
        user = User(name=name.strip(), email=normalise_email(email), password_hash=password_hash)
        self._session.add(user)
        await self._session.flush()
        return user


__all__ = ["UsersRepository", "normalise_email"]
