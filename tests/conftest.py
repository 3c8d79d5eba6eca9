"""Shared pytest fixtures for Taskboard tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.app.lifecycles import register_event_handlers
from taskboard_api.core.errors import UpstreamUnavailable
from taskboard_api.core.security import hash_password
from taskboard_api.db import init_db, metadata, shutdown_db
from taskboard_api.infra.push import PushSubscriptionGone
from taskboard_api.main import create_app
from taskboard_api.models import (
    Project,
    ProjectMembership,
    ProjectRole,
    User,
    Workspace,
    WorkspaceMembership,
    WorkspaceRole,
)
from taskboard_api.settings import Settings

TEST_JWT_SECRET = "test-secret-0123456789abcdef-0123456789abcdef"
DEFAULT_PASSWORD = "correct horse battery staple"


class RecordingEmailSender:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False
        self.hold: asyncio.Event | None = None

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.hold is not None:
            await self.hold.wait()
        if self.fail:
            raise UpstreamUnavailable("smtp down")
        self.sent.append((to, subject, body))

    def recipients(self) -> list[str]:
        return [to for to, _, _ in self.sent]


class RecordingPushSender:
    def __init__(self) -> None:
        self.sent: list[tuple[dict[str, Any], dict[str, Any]]] = []
        self.gone: set[str] = set()

    async def send(self, subscription: Mapping[str, Any], payload: Mapping[str, Any]) -> None:
        if subscription["endpoint"] in self.gone:
            raise PushSubscriptionGone("gone")
        self.sent.append((dict(subscription), dict(payload)))


class StubTextGenerator:
    def __init__(self) -> None:
        self.response = ""
        self.error: Exception | None = None
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture(autouse=True)
def _fast_hash(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TASKBOARD_TEST_FAST_HASH", "1")


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'taskboard.sqlite'}",
        jwt_secret=TEST_JWT_SECRET,
        frontend_url="http://frontend.test",
        logging_level="WARNING",
    )


@pytest.fixture()
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture()
def push_sender() -> RecordingPushSender:
    return RecordingPushSender()


@pytest.fixture()
def text_generator() -> StubTextGenerator:
    return StubTextGenerator()


@pytest_asyncio.fixture()
async def app(
    settings: Settings,
    email_sender: RecordingEmailSender,
    push_sender: RecordingPushSender,
    text_generator: StubTextGenerator,
) -> AsyncIterator[FastAPI]:
    """Application wired like the lifespan does, minus the background worker.

    Tests deliver queued side effects with ``await app.state.events.drain()``.
    """

    application = create_app(
        settings,
        email_sender=email_sender,
        push_sender=push_sender,
        text_generator=text_generator,
    )
    database = init_db(application, settings)
    register_event_handlers(application, settings)
    async with database.engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield application
    await shutdown_db(application)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an HTTPX async client bound to the FastAPI app."""

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def session_factory(app: FastAPI) -> Callable[[], AsyncSession]:
    return app.state.database.sessionmaker


@pytest.fixture()
def auth_headers(app: FastAPI) -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {app.state.tokens.issue_access(user.id)}"}

    return _headers


@pytest.fixture()
def make_user(session_factory: Callable[[], AsyncSession]):
    async def _make(
        name: str,
        *,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        is_admin: bool = False,
    ) -> User:
        async with session_factory() as session:
            user = User(
                name=name,
                email=email or f"{name.lower()}@example.com",
                password_hash=hash_password(password),
                is_admin=is_admin,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture()
def make_workspace(session_factory: Callable[[], AsyncSession]):
    """Create a workspace owned by ``owner`` with extra ``members`` (user, role)."""

    async def _make(
        owner: User,
        *members: tuple[User, WorkspaceRole],
        name: str = "Acme",
    ) -> Workspace:
        async with session_factory() as session:
            workspace = Workspace(name=name, created_by=owner.id)
            session.add(workspace)
            await session.flush()
            session.add(
                WorkspaceMembership(
                    workspace_id=workspace.id, user_id=owner.id, role=WorkspaceRole.OWNER
                )
            )
            for user, role in members:
                session.add(
                    WorkspaceMembership(workspace_id=workspace.id, user_id=user.id, role=role)
                )
            await session.commit()
            return workspace

    return _make


@pytest.fixture()
def make_project(session_factory: Callable[[], AsyncSession]):
    """Create a project in ``workspace`` with explicit (user, role) memberships."""

    async def _make(
        workspace: Workspace,
        creator: User,
        *members: tuple[User, ProjectRole],
        name: str = "Launch",
    ) -> Project:
        async with session_factory() as session:
            project = Project(workspace_id=workspace.id, name=name, created_by=creator.id)
            session.add(project)
            await session.flush()
            for user, role in members:
                session.add(ProjectMembership(project_id=project.id, user_id=user.id, role=role))
            await session.commit()
            return project

    return _make
