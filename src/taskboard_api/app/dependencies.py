"""Request-scoped dependencies: sessions, services, identity and rate limits.

Routers import per-request service constructors from here. Shared objects
(token issuer, event dispatcher, collaborators) live on ``app.state`` and are
read per request so tests can build isolated applications.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Depends, Request, Response
from fastapi.routing import APIRoute
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.common.middleware import client_address
from taskboard_api.core.errors import AuthenticationFailure, RateLimited
from taskboard_api.core.rate_limit import FixedWindowRateLimiter, retry_after_seconds
from taskboard_api.core.security import TokenIssuer
from taskboard_api.db import get_db_session
from taskboard_api.features.audit import queue_audit
from taskboard_api.features.auth.service import AuthService, ClientInfo
from taskboard_api.features.notifications.service import NotificationsService
from taskboard_api.features.projects.service import ProjectsService
from taskboard_api.features.push.service import PushService
from taskboard_api.features.tasks.service import TasksService
from taskboard_api.features.users.repository import UsersRepository
from taskboard_api.features.users.service import UsersService
from taskboard_api.features.workspaces.service import WorkspacesService
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.models import User
from taskboard_api.settings import Settings

logger = logging.getLogger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_db_session)]

_bearer = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_events(request: Request) -> EventDispatcher:
    return request.app.state.events


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.tokens


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
EventsDep = Annotated[EventDispatcher, Depends(get_events)]
TokensDep = Annotated[TokenIssuer, Depends(get_token_issuer)]


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=client_address(request),
        user_agent=request.headers.get("User-Agent"),
    )


# ---- Identity ---------------------------------------------------------------


async def get_current_user(
    session: SessionDep,
    tokens: TokensDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> User:
    """Resolve the bearer access token to a user; fail closed on anything else."""

    if credentials is None or not credentials.credentials:
        raise AuthenticationFailure("Not authenticated")
    claims = tokens.verify(credentials.credentials)
    user = await UsersRepository(session).get_by_id(claims.user_id)
    if user is None:
        raise AuthenticationFailure("Not authenticated")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


# ---- Rate limiting ----------------------------------------------------------


class RateLimitGuard:
    """Count one attempt per caller address for ``scope``; raise once over the limit."""

    def __init__(self, scope: str) -> None:
        self.scope = scope

    async def __call__(self, request: Request) -> None:
        limiter: FixedWindowRateLimiter = request.app.state.rate_limiters[self.scope]
        key = client_address(request) or "unknown"
        decision = limiter.check(key)
        if decision.allowed:
            return
        retry_after = retry_after_seconds(decision)
        logger.warning(
            "rate_limit.exceeded",
            extra=log_context(scope=self.scope, client_ip=key, retry_after=retry_after),
        )
        queue_audit(
            request.app.state.events,
            "RATE_LIMITED",
            level="warn",
            details={"scope": self.scope, "ip": key},
        )
        raise RateLimited(retry_after=retry_after)


class RateLimitedRoute(APIRoute):
    """Route whose attempts are counted before the request body is read.

    The route name selects the limiter, so unparseable bodies count as well.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()
        guard = RateLimitGuard(self.name)

        async def rate_limited_handler(request: Request) -> Response:
            await guard(request)
            return await handler(request)

        return rate_limited_handler


# ---- Services ---------------------------------------------------------------


def get_auth_service(
    session: SessionDep, settings: SettingsDep, tokens: TokensDep, events: EventsDep
) -> AuthService:
    return AuthService(session=session, settings=settings, tokens=tokens, events=events)


def get_users_service(session: SessionDep, events: EventsDep) -> UsersService:
    return UsersService(session=session, events=events)


def get_workspaces_service(session: SessionDep, events: EventsDep) -> WorkspacesService:
    return WorkspacesService(session=session, events=events)


def get_projects_service(session: SessionDep, events: EventsDep) -> ProjectsService:
    return ProjectsService(session=session, events=events)


def get_tasks_service(request: Request, session: SessionDep, events: EventsDep) -> TasksService:
    return TasksService(
        session=session, events=events, text_generator=request.app.state.text_generator
    )


def get_notifications_service(session: SessionDep, events: EventsDep) -> NotificationsService:
    return NotificationsService(session=session, events=events)


def get_push_service(session: SessionDep) -> PushService:
    return PushService(session=session)


__all__ = [
    "CurrentUser",
    "EventsDep",
    "RateLimitGuard",
    "RateLimitedRoute",
    "SessionDep",
    "SettingsDep",
    "TokensDep",
    "get_auth_service",
    "get_client_info",
    "get_current_user",
    "get_notifications_service",
    "get_projects_service",
    "get_push_service",
    "get_tasks_service",
    "get_users_service",
    "get_workspaces_service",
]
