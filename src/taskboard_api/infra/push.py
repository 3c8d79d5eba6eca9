"""Web Push delivery through an HTTP push gateway."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import UpstreamUnavailable
from taskboard_api.settings import Settings

logger = logging.getLogger(__name__)

_GONE_STATUSES = {404, 410}


class PushSubscriptionGone(UpstreamUnavailable):
    """The gateway reported that the subscription no longer exists."""


class PushSender(Protocol):
    async def send(self, subscription: Mapping[str, Any], payload: Mapping[str, Any]) -> None: ...


class HttpPushSender:
    """POST ``{"subscription", "payload"}`` documents to a push gateway."""

    def __init__(
        self,
        *,
        gateway_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._gateway_url = gateway_url
        self._timeout = timeout
        self._transport = transport

    async def send(self, subscription: Mapping[str, Any], payload: Mapping[str, Any]) -> None:
        body = {"subscription": dict(subscription), "payload": dict(payload)}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._gateway_url,
                    json=body,
                    headers={"Content-Type": "application/json", "Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Push gateway unreachable: {exc}") from exc

        if response.status_code in _GONE_STATUSES:
            raise PushSubscriptionGone("Push subscription expired")
        if response.status_code >= 400:
            raise UpstreamUnavailable(f"Push gateway returned {response.status_code}")
        logger.debug(
            "push.sent",
            extra=log_context(endpoint=subscription.get("endpoint"), status_code=response.status_code),
        )


class NullPushSender:
    """Used when no push gateway is configured."""

    async def send(self, subscription: Mapping[str, Any], payload: Mapping[str, Any]) -> None:
        logger.debug("push.skipped", extra=log_context(endpoint=subscription.get("endpoint")))


def build_push_sender(settings: Settings) -> PushSender:
    if not settings.push_gateway_url:
        return NullPushSender()
    return HttpPushSender(
        gateway_url=settings.push_gateway_url,
        timeout=settings.push_timeout.total_seconds(),
    )


__all__ = [
    "HttpPushSender",
    "NullPushSender",
    "PushSender",
    "PushSubscriptionGone",
    "build_push_sender",
]
