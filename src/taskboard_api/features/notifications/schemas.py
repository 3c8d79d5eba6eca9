"""Pydantic schemas for in-app notifications."""

from __future__ import annotations

from datetime import datetime

from taskboard_api.common.schema import BaseSchema
from taskboard_api.models import NotificationStatus


class NotificationOut(BaseSchema):
    id: int
    user_id: int
    title: str
    body: str
    status: NotificationStatus
    related_entity_type: str | None = None
    related_entity_id: int | None = None
    created_at: datetime


__all__ = ["NotificationOut"]
