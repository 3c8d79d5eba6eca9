"""In-process fan-out of task updates to live subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from taskboard_api.common.logging import log_context

logger = logging.getLogger(__name__)

MAX_BUFFERED_EVENTS = 100


@dataclass(slots=True)
class TaskSubscriber:
    workspace_id: int
    user_id: int
    client_id: str = field(default_factory=lambda: str(uuid4()))
    queue: asyncio.Queue[dict[str, Any]] = field(
        default_factory=lambda: asyncio.Queue(maxsize=MAX_BUFFERED_EVENTS)
    )

    async def next_event(self) -> dict[str, Any]:
        return await self.queue.get()


class TaskEventBroker:
    """Channels keyed by workspace; every subscriber receives every event.

    No replay or ordering across workspaces is provided. When a subscriber's
    buffer is full the event is skipped for that subscriber only.
    """

    def __init__(self) -> None:
        self._channels: dict[int, dict[str, TaskSubscriber]] = {}

    def subscribe(self, *, workspace_id: int, user_id: int) -> TaskSubscriber:
        subscriber = TaskSubscriber(workspace_id=workspace_id, user_id=user_id)
        self._channels.setdefault(workspace_id, {})[subscriber.client_id] = subscriber
        logger.debug(
            "tasks.realtime.subscribed",
            extra=log_context(workspace_id=workspace_id, user_id=user_id),
        )
        return subscriber

    def unsubscribe(self, subscriber: TaskSubscriber) -> None:
        channel = self._channels.get(subscriber.workspace_id)
        if not channel:
            return
        channel.pop(subscriber.client_id, None)
        if not channel:
            self._channels.pop(subscriber.workspace_id, None)

    def subscriber_count(self, workspace_id: int) -> int:
        return len(self._channels.get(workspace_id, {}))

    def publish(self, workspace_id: int, event: Mapping[str, Any]) -> int:
        """Deliver ``event`` to every subscriber of ``workspace_id``; return receivers."""

        delivered = 0
        for subscriber in list(self._channels.get(workspace_id, {}).values()):
            try:
                subscriber.queue.put_nowait(dict(event))
            except asyncio.QueueFull:
                logger.warning(
                    "tasks.realtime.buffer_full",
                    extra=log_context(workspace_id=workspace_id, user_id=subscriber.user_id),
                )
                continue
            delivered += 1
        return delivered


__all__ = ["MAX_BUFFERED_EVENTS", "TaskEventBroker", "TaskSubscriber"]
