"""Pydantic schemas for projects and project membership."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from taskboard_api.common.schema import BaseSchema
from taskboard_api.models import ProjectRole


class ProjectCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=255)


class ProjectUpdate(BaseSchema):
    name: str | None = Field(default=None, max_length=255)


class ProjectMemberOut(BaseSchema):
    user_id: int
    name: str
    email: str
    role: ProjectRole
    joined_at: datetime


class ProjectOut(BaseSchema):
    id: int
    workspace_id: int
    name: str
    created_by: int
    creator_name: str | None = None
    created_at: datetime
    members: list[ProjectMemberOut] = Field(default_factory=list)


class ProjectMemberRoleUpdate(BaseSchema):
    role: str


class ProjectDeleted(BaseSchema):
    id: int
    deleted: bool = True


__all__ = [
    "ProjectCreate",
    "ProjectDeleted",
    "ProjectMemberOut",
    "ProjectMemberRoleUpdate",
    "ProjectOut",
    "ProjectUpdate",
]
