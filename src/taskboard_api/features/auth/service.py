"""Account registration, sessions and password management."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import (
    AlreadyExists,
    AuthenticationFailure,
    AuthorizationDenied,
    NotFound,
    ValidationFailure,
)
from taskboard_api.core.security import TokenIssuer, TokenType, hash_password, verify_password
from taskboard_api.db import utc_now
from taskboard_api.features.audit import queue_audit
from taskboard_api.features.users.repository import UsersRepository, normalise_email
from taskboard_api.features.workspaces.repository import WorkspacesRepository
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.models import InvitationStatus, User
from taskboard_api.settings import Settings

from .repository import AuthRepository

logger = logging.getLogger(__name__)

PASSWORD_RESET_REQUESTED_EVENT = "auth.password_reset_requested"


@dataclass(slots=True)
class ClientInfo:
    """Where a session request came from; persisted with each refresh token."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(slots=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    user: User


class AuthService:
    """Signup, login, refresh/logout and password flows."""

    def __init__(
        self,
        *,
        session: AsyncSession,
        settings: Settings,
        tokens: TokenIssuer,
        events: EventDispatcher,
    ) -> None:
        self._session = session
        self._settings = settings
        self._tokens = tokens
        self._events = events
        self._repo = AuthRepository(session)
        self._users = UsersRepository(session)
        self._workspaces = WorkspacesRepository(session)

    async def _issue_session_tokens(self, user: User, client: ClientInfo) -> SessionTokens:
        access_token = self._tokens.issue_access(user.id)
        refresh_token = self._tokens.issue_refresh(user.id)
        await self._repo.add_device(
            user_id=user.id,
            refresh_token=refresh_token,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        return SessionTokens(access_token=access_token, refresh_token=refresh_token, user=user)

    async def signup(
        self, *, name: str, email: str, password: str, client: ClientInfo
    ) -> SessionTokens:
        """Create an account, open a session and accept pending invitations.

        The user row, device record, new memberships and invitation status
        changes commit together; any failure leaves none of them behind.
        """
        email = normalise_email(email)
        if not name.strip():
            raise ValidationFailure("Name must not be empty")
        if not password.strip():
            raise ValidationFailure("Password must not be empty")
        if await self._users.get_by_email(email) is not None:
            queue_audit(self._events, "SIGNUP_DUPLICATE_EMAIL", level="warn", details={"email": email})
            raise AlreadyExists("User already exists")

        password_hash = await run_in_threadpool(hash_password, password)
        try:
            user = await self._users.create(name=name, email=email, password_hash=password_hash)
        except IntegrityError:
            # A concurrent signup registered the same email first.
            await self._session.rollback()
            queue_audit(self._events, "SIGNUP_DUPLICATE_EMAIL", level="warn", details={"email": email})
            raise AlreadyExists("User already exists") from None
        tokens = await self._issue_session_tokens(user, client)

        accepted: list[int] = []
        for invitation in await self._workspaces.list_pending_invitations(email):
            existing = await self._workspaces.get_role(
                workspace_id=invitation.workspace_id, user_id=user.id
            )
            if existing is None:
                await self._workspaces.add_member(
                    workspace_id=invitation.workspace_id,
                    user_id=user.id,
                    role=invitation.role,
                )
            invitation.status = InvitationStatus.ACCEPTED
            accepted.append(invitation.workspace_id)

        await self._session.commit()

        logger.info(
            "auth.signup.success",
            extra=log_context(user_id=user.id, accepted_invitations=len(accepted)),
        )
        queue_audit(
            self._events,
            "USER_SIGNED_UP",
            user_id=user.id,
            details={"email": email, "workspace_ids": accepted},
        )
        return tokens

    async def login(self, *, email: str, password: str, client: ClientInfo) -> SessionTokens:
        email = normalise_email(email)
        user = await self._users.get_by_email(email)
        if user is None or not await run_in_threadpool(
            verify_password, password, user.password_hash
        ):
            queue_audit(
                self._events,
                "LOGIN_FAILURE",
                user_id=user.id if user else None,
                level="warn",
                details={"email": email},
            )
            raise AuthenticationFailure("Invalid email or password")
        if user.is_banned:
            queue_audit(self._events, "LOGIN_BANNED", user_id=user.id, level="warn")
            raise AuthorizationDenied("account is banned")

        tokens = await self._issue_session_tokens(user, client)
        await self._session.commit()
        logger.info("auth.login.success", extra=log_context(user_id=user.id))
        queue_audit(self._events, "LOGIN_SUCCESS", user_id=user.id)
        return tokens

    async def refresh(self, *, refresh_token: str) -> str:
        device = await self._repo.get_active_device(refresh_token)
        if device is None:
            raise AuthenticationFailure("Invalid refresh token")
        claims = self._tokens.verify(refresh_token, TokenType.REFRESH)
        if claims.user_id != device.user_id:
            raise AuthenticationFailure("Invalid refresh token")
        return self._tokens.issue_access(claims.user_id)

    async def logout(self, *, refresh_token: str) -> None:
        revoked = await self._repo.revoke_device(refresh_token)
        await self._session.commit()
        logger.info("auth.logout", extra=log_context(revoked=revoked))

    async def forgot_password(self, *, email: str) -> None:
        email = normalise_email(email)
        user = await self._users.get_by_email(email)
        if user is None:
            raise NotFound("User not found")

        token = secrets.token_hex(32)
        await self._repo.add_password_reset(
            user_id=user.id,
            token=token,
            expires_at=utc_now() + self._settings.password_reset_ttl,
        )
        await self._session.commit()

        reset_link = f"{self._settings.frontend_url}/reset-password?{urlencode({'token': token})}"
        self._events.emit(
            PASSWORD_RESET_REQUESTED_EVENT,
            {"email": user.email, "name": user.name, "reset_link": reset_link},
        )
        queue_audit(self._events, "PASSWORD_RESET_REQUESTED", user_id=user.id)

    async def reset_password(self, *, token: str, new_password: str) -> None:
        reset = await self._repo.get_password_reset(token)
        if reset is None or reset.used or reset.expires_at <= utc_now():
            raise ValidationFailure("Invalid or expired reset token")
        if not new_password.strip():
            raise ValidationFailure("Password must not be empty")
        user = await self._users.get_by_id(reset.user_id)
        if user is None:
            raise NotFound("User not found")

        user.password_hash = await run_in_threadpool(hash_password, new_password)
        reset.used = True
        await self._session.commit()
        queue_audit(self._events, "PASSWORD_RESET_COMPLETED", user_id=user.id)

    async def update_password(self, *, user: User, new_password: str) -> None:
        if not new_password.strip():
            raise ValidationFailure("Password must not be empty")
        user.password_hash = await run_in_threadpool(hash_password, new_password)
        await self._session.commit()
        queue_audit(self._events, "PASSWORD_UPDATED", user_id=user.id)


__all__ = ["AuthService", "ClientInfo", "PASSWORD_RESET_REQUESTED_EVENT", "SessionTokens"]
