"""Admin-gated account management."""

from __future__ import annotations

import logging

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import NotFound, ValidationFailure
from taskboard_api.core.rbac import can_administer
from taskboard_api.core.security import hash_password
from taskboard_api.features.audit import queue_audit
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.models import User, UserStatus

from .repository import UsersRepository

logger = logging.getLogger(__name__)


class UsersService:
    """Ban, unban and reset passwords on behalf of administrators."""

    def __init__(self, *, session: AsyncSession, events: EventDispatcher) -> None:
        self._session = session
        self._events = events
        self._repo = UsersRepository(session)

    async def _require_target(self, actor: User, user_id: int, action: str) -> User:
        decision = can_administer(actor.is_admin)
        if not decision:
            queue_audit(
                self._events,
                f"{action}_DENIED",
                user_id=actor.id,
                level="warn",
                details={"target_user_id": user_id, "reason": decision.reason},
            )
        decision.enforce()
        target = await self._repo.get_by_id(user_id)
        if target is None:
            raise NotFound("User not found")
        return target

    async def ban_user(self, *, actor: User, user_id: int) -> User:
        target = await self._require_target(actor, user_id, "BAN_USER")
        target.status = UserStatus.BANNED
        await self._session.commit()
        logger.info("user.ban.success", extra=log_context(user_id=actor.id, target_user_id=user_id))
        queue_audit(self._events, "USER_BANNED", user_id=actor.id, details={"target_user_id": user_id})
        return target

    async def unban_user(self, *, actor: User, user_id: int) -> User:
        target = await self._require_target(actor, user_id, "UNBAN_USER")
        target.status = UserStatus.ACTIVE
        await self._session.commit()
        logger.info("user.unban.success", extra=log_context(user_id=actor.id, target_user_id=user_id))
        queue_audit(
            self._events, "USER_UNBANNED", user_id=actor.id, details={"target_user_id": user_id}
        )
        return target

    async def admin_reset_password(self, *, actor: User, user_id: int, new_password: str) -> User:
        target = await self._require_target(actor, user_id, "ADMIN_RESET_PASSWORD")
        if not new_password.strip():
            raise ValidationFailure("Password must not be empty")
        target.password_hash = await run_in_threadpool(hash_password, new_password)
        await self._session.commit()
        queue_audit(
            self._events,
            "ADMIN_PASSWORD_RESET",
            user_id=actor.id,
            details={"target_user_id": user_id},
        )
        return target


__all__ = ["UsersService"]
