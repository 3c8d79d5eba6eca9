"""Pydantic schemas for Web Push subscriptions."""

from __future__ import annotations

from pydantic import Field

from taskboard_api.common.schema import BaseSchema


class PushKeys(BaseSchema):
    p256dh: str = Field(min_length=1, max_length=255)
    auth: str = Field(min_length=1, max_length=255)


class PushSubscriptionIn(BaseSchema):
    """The browser's ``PushSubscription.toJSON()`` document."""

    endpoint: str = Field(min_length=1, max_length=2048)
    keys: PushKeys


class PushUnsubscribe(BaseSchema):
    endpoint: str = Field(min_length=1, max_length=2048)


class PushSubscriptionOut(BaseSchema):
    id: int
    endpoint: str


__all__ = ["PushKeys", "PushSubscriptionIn", "PushSubscriptionOut", "PushUnsubscribe"]
