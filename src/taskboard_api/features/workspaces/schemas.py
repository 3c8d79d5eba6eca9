"""Pydantic schemas for workspaces and membership."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field

from taskboard_api.common.schema import BaseSchema
from taskboard_api.models import WorkspaceRole


class WorkspaceCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class WorkspaceMemberOut(BaseSchema):
    """A membership row, or an invitation placeholder when ``user_id`` is null."""

    user_id: int | None = None
    name: str | None = None
    email: str | None = None
    role: WorkspaceRole
    joined_at: datetime | None = None


class WorkspaceOut(BaseSchema):
    id: int
    name: str
    created_by: int
    created_at: datetime
    members: list[WorkspaceMemberOut] = Field(default_factory=list)


class UserWorkspaceOut(BaseSchema):
    id: int
    name: str
    role: WorkspaceRole
    created_at: datetime


class WorkspaceMemberAdd(BaseSchema):
    email: EmailStr
    role: str = WorkspaceRole.MEMBER.value


class WorkspaceMemberRoleUpdate(BaseSchema):
    role: str


__all__ = [
    "UserWorkspaceOut",
    "WorkspaceCreate",
    "WorkspaceMemberAdd",
    "WorkspaceMemberOut",
    "WorkspaceMemberRoleUpdate",
    "WorkspaceOut",
]
