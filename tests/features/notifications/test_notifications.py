"""Notification endpoint tests."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from taskboard_api.models import Notification, NotificationStatus


@pytest.fixture()
def make_notification(session_factory):
    async def _make(user, title: str = "New task: Write docs") -> Notification:
        async with session_factory() as session:
            notification = Notification(user_id=user.id, title=title, body="Body")
            session.add(notification)
            await session.commit()
            return notification

    return _make


@pytest.mark.asyncio
async def test_list_returns_own_notifications_newest_first(
    async_client: AsyncClient, make_user, make_notification, auth_headers
) -> None:
    ada = await make_user("Ada")
    bob = await make_user("Bob")
    first = await make_notification(ada, "first")
    second = await make_notification(ada, "second")
    await make_notification(bob, "not yours")

    response = await async_client.get("/api/notifications", headers=auth_headers(ada))

    assert response.status_code == 200
    assert [n["id"] for n in response.json()] == [second.id, first.id]
    assert {n["status"] for n in response.json()} == {NotificationStatus.UNSEEN.value}


@pytest.mark.asyncio
async def test_mark_seen_is_idempotent(
    async_client: AsyncClient, make_user, make_notification, auth_headers
) -> None:
    ada = await make_user("Ada")
    notification = await make_notification(ada)
    url = f"/api/notifications/{notification.id}/seen"

    first = await async_client.post(url, headers=auth_headers(ada))
    second = await async_client.post(url, headers=auth_headers(ada))

    assert first.status_code == second.status_code == 200
    assert first.json()["status"] == second.json()["status"] == NotificationStatus.SEEN.value


@pytest.mark.asyncio
async def test_only_recipient_marks_seen(
    async_client: AsyncClient, make_user, make_notification, auth_headers
) -> None:
    ada = await make_user("Ada")
    bob = await make_user("Bob")
    notification = await make_notification(ada)

    response = await async_client.post(
        f"/api/notifications/{notification.id}/seen", headers=auth_headers(bob)
    )

    assert response.status_code == 403
    assert response.json()["reason"] == "only the recipient can mark a notification as seen"

    listing = await async_client.get("/api/notifications", headers=auth_headers(ada))
    assert listing.json()[0]["status"] == NotificationStatus.UNSEEN.value


@pytest.mark.asyncio
async def test_mark_unknown_notification(
    async_client: AsyncClient, make_user, auth_headers
) -> None:
    ada = await make_user("Ada")

    response = await async_client.post("/api/notifications/9999/seen", headers=auth_headers(ada))

    assert response.status_code == 404
