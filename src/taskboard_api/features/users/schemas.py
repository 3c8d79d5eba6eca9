"""Pydantic schemas for user accounts."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from taskboard_api.common.schema import BaseSchema
from taskboard_api.models import UserStatus


class UserOut(BaseSchema):
    id: int
    name: str
    email: str
    status: UserStatus
    is_admin: bool = False
    created_at: datetime


class AdminPasswordReset(BaseSchema):
    new_password: str = Field(min_length=1)


class MessageResponse(BaseSchema):
    message: str


__all__ = ["AdminPasswordReset", "MessageResponse", "UserOut"]
