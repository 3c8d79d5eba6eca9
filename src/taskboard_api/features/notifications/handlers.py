"""Side-effect handlers subscribed to domain events.

Every handler runs after the originating transaction has committed and opens
its own session. Collaborator failures are logged per recipient and never
propagate back to the mutation that produced the event.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import UpstreamUnavailable
from taskboard_api.features.auth.service import PASSWORD_RESET_REQUESTED_EVENT
from taskboard_api.features.projects.repository import TASK_ENTITY
from taskboard_api.features.push.repository import PushSubscriptionsRepository
from taskboard_api.features.tasks.realtime import TaskEventBroker
from taskboard_api.features.tasks.service import (
    TASK_ASSIGNED_EVENT,
    TASK_CHANGED_EVENT,
    TASK_UPDATED_EVENT,
)
from taskboard_api.features.users.repository import UsersRepository
from taskboard_api.features.workspaces.service import INVITATION_CREATED_EVENT, MEMBER_ADDED_EVENT
from taskboard_api.infra.email import EmailSender
from taskboard_api.infra.events import Event, EventDispatcher
from taskboard_api.infra.push import PushSender, PushSubscriptionGone

from .repository import NotificationsRepository

logger = logging.getLogger(__name__)


def invitation_email(payload: dict[str, Any], frontend_url: str) -> tuple[str, str]:
    subject = f"You're invited to join {payload['workspace_name']}"
    body = (
        f"{payload['inviter_name']} invited you to the workspace "
        f"\"{payload['workspace_name']}\" as {payload['role']}.\n\n"
        f"Create an account with this email address to join: {frontend_url}/signup\n"
    )
    return subject, body


def member_added_email(payload: dict[str, Any], frontend_url: str) -> tuple[str, str]:
    subject = f"You've been added to {payload['workspace_name']}"
    body = (
        f"Hi {payload['name']},\n\n"
        f"You now have the {payload['role']} role in \"{payload['workspace_name']}\".\n"
        f"Open it at {frontend_url}/workspaces/{payload['workspace_id']}\n"
    )
    return subject, body


def task_assigned_message(payload: dict[str, Any]) -> tuple[str, str]:
    title = f"New task: {payload['task_title']}"
    body = (
        f"{payload['actor_name']} assigned you \"{payload['task_title']}\" "
        f"in project \"{payload['project_name']}\"."
    )
    return title, body


def task_updated_message(payload: dict[str, Any]) -> tuple[str, str]:
    title = f"Task updated: {payload['task_title']}"
    body = (
        f"{payload['actor_name']} moved \"{payload['task_title']}\" in project "
        f"\"{payload['project_name']}\" from {payload['previous_status']} to {payload['status']}."
    )
    return title, body


def password_reset_email(payload: dict[str, Any]) -> tuple[str, str]:
    subject = "Reset your password"
    body = (
        f"Hi {payload['name']},\n\n"
        f"Use this link to choose a new password: {payload['reset_link']}\n"
        "If you did not request a reset you can ignore this email.\n"
    )
    return subject, body


class NotificationHandlers:
    """Email, push, in-app and realtime delivery for domain events."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], AsyncSession],
        email_sender: EmailSender,
        push_sender: PushSender,
        broker: TaskEventBroker,
        frontend_url: str,
    ) -> None:
        self._session_factory = session_factory
        self._email = email_sender
        self._push = push_sender
        self._broker = broker
        self._frontend_url = frontend_url.rstrip("/")

    def register(self, events: EventDispatcher) -> None:
        events.subscribe(INVITATION_CREATED_EVENT, self.on_invitation_created)
        events.subscribe(MEMBER_ADDED_EVENT, self.on_member_added)
        events.subscribe(TASK_ASSIGNED_EVENT, self.on_task_assigned)
        events.subscribe(TASK_UPDATED_EVENT, self.on_task_updated)
        events.subscribe(TASK_CHANGED_EVENT, self.on_task_changed)
        events.subscribe(PASSWORD_RESET_REQUESTED_EVENT, self.on_password_reset_requested)

    async def _send_email(self, to: str, subject: str, body: str, *, event: Event) -> None:
        try:
            await self._email.send(to, subject, body)
        except UpstreamUnavailable:
            logger.warning(
                "notifications.email.failed",
                extra=log_context(event_name=event.name, recipient=to),
                exc_info=True,
            )

    # ---- Workspace membership ---------------------------------------------

    async def on_invitation_created(self, event: Event) -> None:
        payload = dict(event.payload)
        subject, body = invitation_email(payload, self._frontend_url)
        await self._send_email(payload["email"], subject, body, event=event)

    async def on_member_added(self, event: Event) -> None:
        payload = dict(event.payload)
        subject, body = member_added_email(payload, self._frontend_url)
        await self._send_email(payload["email"], subject, body, event=event)

    async def on_password_reset_requested(self, event: Event) -> None:
        payload = dict(event.payload)
        subject, body = password_reset_email(payload)
        await self._send_email(payload["email"], subject, body, event=event)

    # ---- Tasks -------------------------------------------------------------

    async def on_task_assigned(self, event: Event) -> None:
        """Store one notification per recipient, then email and push it."""

        payload = dict(event.payload)
        title, body = task_assigned_message(payload)
        for user_id in payload.get("recipient_ids", []):
            await self._notify_assignee(event, user_id=user_id, title=title, body=body)

    async def _notify_assignee(self, event: Event, *, user_id: int, title: str, body: str) -> None:
        task_id = event.payload["task_id"]
        try:
            async with self._session_factory() as session:
                user = await UsersRepository(session).get_by_id(user_id)
                if user is None:
                    return
                email = user.email
                await NotificationsRepository(session).add(
                    user_id=user_id,
                    title=title,
                    body=body,
                    related_entity_type=TASK_ENTITY,
                    related_entity_id=task_id,
                )
                await session.commit()
                subscriptions = [
                    (sub.id, sub.as_subscription())
                    for sub in await PushSubscriptionsRepository(session).list_for_user(user_id)
                ]
        except SQLAlchemyError:
            logger.exception(
                "notifications.persist.failed",
                extra=log_context(task_id=task_id, user_id=user_id),
            )
            return

        await self._send_email(email, title, body, event=event)
        push_payload = {"title": title, "body": body, "taskId": task_id}
        for subscription_id, subscription in subscriptions:
            await self._send_push(subscription_id, subscription, push_payload, user_id=user_id)

    async def _send_push(
        self,
        subscription_id: int,
        subscription: dict[str, Any],
        payload: dict[str, Any],
        *,
        user_id: int,
    ) -> None:
        try:
            await self._push.send(subscription, payload)
        except PushSubscriptionGone:
            logger.info(
                "notifications.push.expired",
                extra=log_context(user_id=user_id, subscription_id=subscription_id),
            )
            try:
                async with self._session_factory() as session:
                    await PushSubscriptionsRepository(session).delete(subscription_id)
                    await session.commit()
            except SQLAlchemyError:
                logger.exception(
                    "notifications.push.cleanup_failed",
                    extra=log_context(subscription_id=subscription_id),
                )
        except UpstreamUnavailable:
            logger.warning(
                "notifications.push.failed",
                extra=log_context(user_id=user_id, subscription_id=subscription_id),
                exc_info=True,
            )

    async def on_task_updated(self, event: Event) -> None:
        payload = dict(event.payload)
        recipients = payload.get("recipient_ids", [])
        if not recipients:
            return
        async with self._session_factory() as session:
            users = await UsersRepository(session).get_many(recipients)
            emails = [user.email for user in users]
        subject, body = task_updated_message(payload)
        for email in emails:
            await self._send_email(email, subject, body, event=event)

    async def on_task_changed(self, event: Event) -> None:
        payload = event.payload
        delivered = self._broker.publish(payload["workspace_id"], payload["task"])
        logger.debug(
            "tasks.realtime.published",
            extra=log_context(workspace_id=payload["workspace_id"], receivers=delivered),
        )


__all__ = [
    "NotificationHandlers",
    "invitation_email",
    "member_added_email",
    "password_reset_email",
    "task_assigned_message",
    "task_updated_message",
]
