"""Project, project membership and cascade persistence helpers."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskboard_api.models import (
    Notification,
    Project,
    ProjectMembership,
    ProjectRole,
    Task,
    TaskAssignment,
)

TASK_ENTITY = "task"


class ProjectsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_project(self, project_id: int) -> Project | None:
        stmt = (
            select(Project)
            .options(selectinload(Project.memberships))
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def list_for_workspace(self, workspace_id: int) -> list[Project]:
        stmt = (
            select(Project)
            .options(selectinload(Project.memberships))
            .where(Project.workspace_id == workspace_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.unique().scalars().all())

    async def create_project(self, *, workspace_id: int, name: str, created_by: int) -> Project:
        project = Project(workspace_id=workspace_id, name=name, created_by=created_by)
        self._session.add(project)
        await self._session.flush()
        return project

    # ---- Memberships -------------------------------------------------------

    async def get_role(self, *, project_id: int, user_id: int) -> ProjectRole | None:
        stmt = select(ProjectMembership.role).where(
            ProjectMembership.project_id == project_id,
            ProjectMembership.user_id == user_id,
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_membership(self, *, project_id: int, user_id: int) -> ProjectMembership | None:
        stmt = (
            select(ProjectMembership)
            .where(
                ProjectMembership.project_id == project_id,
                ProjectMembership.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_members(self, project_id: int) -> list[ProjectMembership]:
        stmt = (
            select(ProjectMembership)
            .where(ProjectMembership.project_id == project_id)
            .order_by(ProjectMembership.joined_at, ProjectMembership.user_id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def member_ids(self, project_id: int) -> set[int]:
        stmt = select(ProjectMembership.user_id).where(ProjectMembership.project_id == project_id)
        return set((await self._session.execute(stmt)).scalars().all())

    async def add_members(self, *, project_id: int, roles: dict[int, ProjectRole]) -> None:
        self._session.add_all(
            ProjectMembership(project_id=project_id, user_id=user_id, role=role)
            for user_id, role in roles.items()
        )
        await self._session.flush()

    async def remove_member(self, *, project_id: int, user_id: int) -> None:
        await self._session.execute(
            delete(ProjectMembership).where(
                ProjectMembership.project_id == project_id,
                ProjectMembership.user_id == user_id,
            )
        )

    async def delete_member_assignments(self, *, project_id: int, user_id: int) -> None:
        task_ids = select(Task.id).where(Task.project_id == project_id)
        await self._session.execute(
            delete(TaskAssignment).where(
                TaskAssignment.user_id == user_id,
                TaskAssignment.task_id.in_(task_ids),
            )
        )

    # ---- Cascade steps (run inside one transaction by the service) ---------

    async def delete_task_assignments(self, project_id: int) -> None:
        task_ids = select(Task.id).where(Task.project_id == project_id)
        await self._session.execute(
            delete(TaskAssignment).where(TaskAssignment.task_id.in_(task_ids))
        )

    async def delete_task_notifications(self, project_id: int) -> None:
        task_ids = select(Task.id).where(Task.project_id == project_id)
        await self._session.execute(
            delete(Notification).where(
                Notification.related_entity_type == TASK_ENTITY,
                Notification.related_entity_id.in_(task_ids),
            )
        )

    async def delete_tasks(self, project_id: int) -> None:
        await self._session.execute(delete(Task).where(Task.project_id == project_id))

    async def delete_members(self, project_id: int) -> None:
        await self._session.execute(
            delete(ProjectMembership).where(ProjectMembership.project_id == project_id)
        )

    async def delete_project_row(self, project_id: int) -> None:
        await self._session.execute(delete(Project).where(Project.id == project_id))


__all__ = ["ProjectsRepository", "TASK_ENTITY"]
