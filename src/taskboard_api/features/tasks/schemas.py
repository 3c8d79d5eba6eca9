"""Pydantic schemas for tasks."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from taskboard_api.common.schema import BaseSchema
from taskboard_api.models import DEFAULT_TASK_STATUS


class TaskCreate(BaseSchema):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: str = Field(default=DEFAULT_TASK_STATUS, min_length=1, max_length=50)
    assigned_to_ids: list[int] = Field(default_factory=list)


class TaskUpdate(BaseSchema):
    """Omitted fields keep their stored value; ``assigned_to_ids`` replaces the set."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: str | None = Field(default=None, min_length=1, max_length=50)
    assigned_to_ids: list[int] | None = None


class TaskOut(BaseSchema):
    id: int
    project_id: int
    title: str
    description: str | None = None
    status: str
    created_by: int | None = None
    assigned_to_ids: list[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class GenerateTasksRequest(BaseSchema):
    prompt: str = Field(min_length=1, max_length=4000)


class TaskSummaryOut(BaseSchema):
    task_id: int
    summary: str


__all__ = ["GenerateTasksRequest", "TaskCreate", "TaskOut", "TaskSummaryOut", "TaskUpdate"]
