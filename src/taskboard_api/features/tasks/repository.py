"""Task and assignment persistence helpers."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskboard_api.models import Task, TaskAssignment


class TasksRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_task(self, task_id: int) -> Task | None:
        stmt = (
            select(Task)
            .options(selectinload(Task.assignments))
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def create_task(
        self,
        *,
        project_id: int,
        title: str,
        description: str | None,
        status: str,
        created_by: int,
    ) -> Task:
        task = Task(
            project_id=project_id,
            title=title,
            description=description,
            status=status,
            created_by=created_by,
        )
        self._session.add(task)
        await self._session.flush()
        return task

    async def add_assignees(self, *, task_id: int, user_ids: Iterable[int]) -> None:
        self._session.add_all(
            TaskAssignment(task_id=task_id, user_id=user_id) for user_id in sorted(set(user_ids))
        )
        await self._session.flush()

    async def replace_assignees(self, *, task_id: int, user_ids: Iterable[int]) -> None:
        """Delete every assignment of the task, then insert ``user_ids``."""
        await self._session.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task_id))
        await self.add_assignees(task_id=task_id, user_ids=user_ids)


__all__ = ["TasksRepository"]
