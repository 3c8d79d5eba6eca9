"""Project services: creation, updates, cascading deletion and membership."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import NotFound, OperationFailed, ValidationFailure
from taskboard_api.core.rbac import (
    AccessDecision,
    can_change_project_member_role,
    can_create_project,
    can_modify_project,
    can_remove_project_member,
    can_view_workspace,
)
from taskboard_api.features.audit import queue_audit
from taskboard_api.features.workspaces.repository import WorkspacesRepository
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.models import Project, ProjectMembership, ProjectRole, User

from .repository import ProjectsRepository
from .schemas import ProjectMemberOut, ProjectOut

logger = logging.getLogger(__name__)


def parse_project_role(value: str | ProjectRole) -> ProjectRole:
    try:
        return ProjectRole(value)
    except ValueError:
        raise ValidationFailure("Invalid role") from None


def project_member_out(membership: ProjectMembership) -> ProjectMemberOut:
    return ProjectMemberOut(
        user_id=membership.user_id,
        name=membership.user.name,
        email=membership.user.email,
        role=membership.role,
        joined_at=membership.joined_at,
    )


def project_out(project: Project, members: list[ProjectMembership]) -> ProjectOut:
    return ProjectOut(
        id=project.id,
        workspace_id=project.workspace_id,
        name=project.name,
        created_by=project.created_by,
        creator_name=project.creator.name if project.creator else None,
        created_at=project.created_at,
        members=[project_member_out(m) for m in members],
    )


class ProjectsService:
    """Project mutations gated by workspace and project roles."""

    def __init__(self, *, session: AsyncSession, events: EventDispatcher) -> None:
        self._session = session
        self._events = events
        self._repo = ProjectsRepository(session)
        self._workspaces = WorkspacesRepository(session)

    def _enforce(self, decision: AccessDecision, *, actor: User, action: str, **details) -> None:
        if not decision:
            logger.info(
                "project.access.denied",
                extra=log_context(user_id=actor.id, action=action, reason=decision.reason),
            )
            queue_audit(
                self._events,
                f"{action}_DENIED",
                user_id=actor.id,
                level="warn",
                details={"reason": decision.reason, **details},
            )
        decision.enforce()

    async def _require_project(self, project_id: int) -> Project:
        project = await self._repo.get_project(project_id)
        if project is None:
            raise NotFound("Project not found")
        return project

    async def _authorize_modify(self, *, actor: User, project: Project, action: str) -> None:
        workspace_role = await self._workspaces.get_role(
            workspace_id=project.workspace_id, user_id=actor.id
        )
        project_role = await self._repo.get_role(project_id=project.id, user_id=actor.id)
        self._enforce(
            can_modify_project(workspace_role, project_role),
            actor=actor,
            action=action,
            project_id=project.id,
        )

    async def _loaded(self, project_id: int) -> ProjectOut:
        project = await self._require_project(project_id)
        return project_out(project, await self._repo.list_members(project_id))

    async def create_project(self, *, actor: User, workspace_id: int, name: str) -> ProjectOut:
        """Create a project led by ``actor`` with every other workspace member contributing."""
        if not await self._workspaces.exists(workspace_id):
            raise NotFound("Workspace not found")
        role = await self._workspaces.get_role(workspace_id=workspace_id, user_id=actor.id)
        self._enforce(
            can_create_project(role), actor=actor, action="CREATE_PROJECT", workspace_id=workspace_id
        )
        name = name.strip()
        if not name:
            raise ValidationFailure("Project name must not be empty")

        project = await self._repo.create_project(
            workspace_id=workspace_id, name=name, created_by=actor.id
        )
        roles = {
            member.user_id: ProjectRole.CONTRIBUTOR
            for member in await self._workspaces.list_members(workspace_id)
            if member.user_id != actor.id
        }
        roles[actor.id] = ProjectRole.PROJECT_LEAD
        await self._repo.add_members(project_id=project.id, roles=roles)
        await self._session.commit()

        logger.info(
            "project.create.success",
            extra=log_context(
                workspace_id=workspace_id, project_id=project.id, user_id=actor.id, members=len(roles)
            ),
        )
        queue_audit(
            self._events,
            "PROJECT_CREATED",
            user_id=actor.id,
            details={"workspace_id": workspace_id, "project_id": project.id, "name": name},
        )
        return await self._loaded(project.id)

    async def update_project(
        self, *, actor: User, project_id: int, name: str | None = None
    ) -> ProjectOut:
        project = await self._require_project(project_id)
        await self._authorize_modify(actor=actor, project=project, action="UPDATE_PROJECT")

        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationFailure("Project name must not be empty")
            project.name = name
        await self._session.commit()

        logger.info("project.update.success", extra=log_context(project_id=project_id, user_id=actor.id))
        queue_audit(
            self._events,
            "PROJECT_UPDATED",
            user_id=actor.id,
            details={"project_id": project_id, "name": project.name},
        )
        return await self._loaded(project_id)

    async def delete_project(self, *, actor: User, project_id: int) -> None:
        """Delete the project and everything under it as one atomic unit.

        Order: task assignments, task notifications, tasks, memberships, the
        project row. Any failure rolls back every step.
        """
        project = await self._require_project(project_id)
        await self._authorize_modify(actor=actor, project=project, action="DELETE_PROJECT")
        workspace_id = project.workspace_id
        actor_id = actor.id

        try:
            await self._repo.delete_task_assignments(project_id)
            await self._repo.delete_task_notifications(project_id)
            await self._repo.delete_tasks(project_id)
            await self._repo.delete_members(project_id)
            await self._repo.delete_project_row(project_id)
            await self._session.commit()
        except Exception as exc:
            await self._session.rollback()
            logger.exception(
                "project.delete.failed",
                extra=log_context(project_id=project_id, user_id=actor_id),
            )
            queue_audit(
                self._events,
                "DELETE_PROJECT_FAILED",
                user_id=actor_id,
                level="error",
                details={"project_id": project_id, "error": type(exc).__name__},
            )
            raise OperationFailed("Failed to delete project") from exc

        logger.info(
            "project.delete.success",
            extra=log_context(workspace_id=workspace_id, project_id=project_id, user_id=actor.id),
        )
        queue_audit(
            self._events,
            "PROJECT_DELETED",
            user_id=actor.id,
            details={"workspace_id": workspace_id, "project_id": project_id},
        )

    async def update_member_role(
        self,
        *,
        actor: User,
        project_id: int,
        user_id: int,
        role: str | ProjectRole,
    ) -> ProjectMemberOut:
        await self._require_project(project_id)
        actor_role = await self._repo.get_role(project_id=project_id, user_id=actor.id)
        self._enforce(
            can_change_project_member_role(actor_role),
            actor=actor,
            action="UPDATE_PROJECT_MEMBER_ROLE",
            project_id=project_id,
        )
        new_role = parse_project_role(role)
        membership = await self._repo.get_membership(project_id=project_id, user_id=user_id)
        if membership is None:
            raise NotFound("Member not found")

        membership.role = new_role
        await self._session.commit()
        logger.info(
            "project.member.role_updated",
            extra=log_context(project_id=project_id, member_id=user_id, role=new_role.value),
        )
        queue_audit(
            self._events,
            "PROJECT_MEMBER_ROLE_UPDATED",
            user_id=actor.id,
            details={"project_id": project_id, "member_id": user_id, "role": new_role.value},
        )
        return project_member_out(membership)

    async def remove_member(self, *, actor: User, project_id: int, user_id: int) -> None:
        """Remove a member and their task assignments within this project."""
        await self._require_project(project_id)
        actor_role = await self._repo.get_role(project_id=project_id, user_id=actor.id)
        self._enforce(
            can_remove_project_member(actor_role, actor_id=actor.id, target_user_id=user_id),
            actor=actor,
            action="REMOVE_PROJECT_MEMBER",
            project_id=project_id,
            member_id=user_id,
        )
        if await self._repo.get_role(project_id=project_id, user_id=user_id) is None:
            raise NotFound("Member not found")

        await self._repo.delete_member_assignments(project_id=project_id, user_id=user_id)
        await self._repo.remove_member(project_id=project_id, user_id=user_id)
        await self._session.commit()
        logger.info(
            "project.member.removed",
            extra=log_context(project_id=project_id, user_id=actor.id, member_id=user_id),
        )
        queue_audit(
            self._events,
            "PROJECT_MEMBER_REMOVED",
            user_id=actor.id,
            details={"project_id": project_id, "member_id": user_id},
        )

    async def list_for_workspace(self, *, actor: User, workspace_id: int) -> list[ProjectOut]:
        if not await self._workspaces.exists(workspace_id):
            raise NotFound("Workspace not found")
        role = await self._workspaces.get_role(workspace_id=workspace_id, user_id=actor.id)
        self._enforce(
            can_view_workspace(role),
            actor=actor,
            action="GET_PROJECTS_BY_WORKSPACE",
            workspace_id=workspace_id,
        )
        return [
            project_out(project, list(project.memberships))
            for project in await self._repo.list_for_workspace(workspace_id)
        ]


__all__ = ["ProjectsService", "parse_project_role", "project_out"]
