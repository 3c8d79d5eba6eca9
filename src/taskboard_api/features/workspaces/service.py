"""Workspace domain services with role-based permissions."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import NotFound, ValidationFailure
from taskboard_api.core.rbac import (
    AccessDecision,
    can_administer,
    can_change_workspace_member,
    can_manage_workspace_members,
    can_view_workspace,
)
from taskboard_api.features.audit import queue_audit
from taskboard_api.features.users.repository import UsersRepository, normalise_email
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.models import User, Workspace, WorkspaceMembership, WorkspaceRole

from .repository import WorkspacesRepository
from .schemas import UserWorkspaceOut, WorkspaceMemberOut, WorkspaceOut

logger = logging.getLogger(__name__)

INVITATION_CREATED_EVENT = "workspace.invitation_created"
MEMBER_ADDED_EVENT = "workspace.member_added"

# OWNER is fixed at creation; membership operations can only grant these.
ASSIGNABLE_ROLES = frozenset({WorkspaceRole.MEMBER, WorkspaceRole.VIEWER})


def parse_assignable_role(value: str | WorkspaceRole) -> WorkspaceRole:
    try:
        role = WorkspaceRole(value)
    except ValueError:
        raise ValidationFailure("Invalid role") from None
    if role not in ASSIGNABLE_ROLES:
        raise ValidationFailure("Invalid role")
    return role


def member_out(membership: WorkspaceMembership) -> WorkspaceMemberOut:
    return WorkspaceMemberOut(
        user_id=membership.user_id,
        name=membership.user.name,
        email=membership.user.email,
        role=membership.role,
        joined_at=membership.joined_at,
    )


def workspace_out(workspace: Workspace, members: list[WorkspaceMembership]) -> WorkspaceOut:
    return WorkspaceOut(
        id=workspace.id,
        name=workspace.name,
        created_by=workspace.created_by,
        created_at=workspace.created_at,
        members=[member_out(m) for m in members],
    )


class WorkspacesService:
    """Create workspaces and manage their membership."""

    def __init__(self, *, session: AsyncSession, events: EventDispatcher) -> None:
        self._session = session
        self._events = events
        self._repo = WorkspacesRepository(session)
        self._users = UsersRepository(session)

    def _enforce(self, decision: AccessDecision, *, actor: User, action: str, **details) -> None:
        if not decision:
            logger.info(
                "workspace.access.denied",
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

    async def _require_workspace(self, workspace_id: int) -> Workspace:
        workspace = await self._repo.get_workspace(workspace_id)
        if workspace is None:
            raise NotFound("Workspace not found")
        return workspace

    async def create_workspace(self, *, actor: User, name: str) -> WorkspaceOut:
        name = name.strip()
        if not name:
            raise ValidationFailure("Workspace name must not be empty")

        workspace = await self._repo.create_workspace(name=name, created_by=actor.id)
        await self._repo.add_member(
            workspace_id=workspace.id, user_id=actor.id, role=WorkspaceRole.OWNER
        )
        await self._session.commit()

        logger.info(
            "workspace.create.success",
            extra=log_context(workspace_id=workspace.id, user_id=actor.id),
        )
        queue_audit(
            self._events,
            "WORKSPACE_CREATED",
            user_id=actor.id,
            details={"workspace_id": workspace.id, "name": name},
        )
        return workspace_out(workspace, await self._repo.list_members(workspace.id))

    async def get_workspace(self, *, actor: User, workspace_id: int) -> WorkspaceOut:
        workspace = await self._require_workspace(workspace_id)
        role = await self._repo.get_role(workspace_id=workspace_id, user_id=actor.id)
        self._enforce(
            can_view_workspace(role), actor=actor, action="GET_WORKSPACE", workspace_id=workspace_id
        )
        return workspace_out(workspace, await self._repo.list_members(workspace_id))

    async def list_user_workspaces(self, *, actor: User) -> list[UserWorkspaceOut]:
        memberships = await self._repo.list_for_user(actor.id)
        return [
            UserWorkspaceOut(
                id=m.workspace.id,
                name=m.workspace.name,
                role=m.role,
                created_at=m.workspace.created_at,
            )
            for m in memberships
        ]

    async def list_all_workspaces(self, *, actor: User) -> list[WorkspaceOut]:
        self._enforce(can_administer(actor.is_admin), actor=actor, action="GET_ALL_WORKSPACES")
        return [workspace_out(w, list(w.memberships)) for w in await self._repo.list_all()]

    async def add_member_by_email(
        self,
        *,
        actor: User,
        workspace_id: int,
        email: str,
        role: str | WorkspaceRole = WorkspaceRole.MEMBER,
    ) -> WorkspaceMemberOut:
        """Add an existing user, or invite an email that has no account yet.

        Repeating the call for the same pair is a no-op that returns the
        existing membership.
        """
        workspace = await self._require_workspace(workspace_id)
        actor_role = await self._repo.get_role(workspace_id=workspace_id, user_id=actor.id)
        self._enforce(
            can_manage_workspace_members(actor_role),
            actor=actor,
            action="ADD_WORKSPACE_MEMBER",
            workspace_id=workspace_id,
        )
        new_role = parse_assignable_role(role)
        email = normalise_email(email)

        user = await self._users.get_by_email(email)
        if user is None:
            invitation = await self._repo.get_invitation(workspace_id=workspace_id, email=email)
            if invitation is None:
                await self._repo.add_invitation(
                    workspace_id=workspace_id,
                    email=email,
                    role=new_role,
                    invited_by=actor.id,
                )
            else:
                invitation.role = new_role
            await self._session.commit()

            logger.info(
                "workspace.invitation.created",
                extra=log_context(workspace_id=workspace_id, user_id=actor.id),
            )
            self._events.emit(
                INVITATION_CREATED_EVENT,
                {
                    "email": email,
                    "workspace_id": workspace_id,
                    "workspace_name": workspace.name,
                    "inviter_name": actor.name,
                    "role": new_role.value,
                },
            )
            queue_audit(
                self._events,
                "WORKSPACE_INVITATION_CREATED",
                user_id=actor.id,
                details={"workspace_id": workspace_id, "email": email},
            )
            return WorkspaceMemberOut(user_id=None, email=email, role=new_role, joined_at=None)

        existing = await self._repo.get_membership(workspace_id=workspace_id, user_id=user.id)
        if existing is not None:
            logger.info(
                "workspace.member.exists",
                extra=log_context(workspace_id=workspace_id, user_id=user.id),
            )
            return member_out(existing)

        user_id = user.id
        try:
            await self._repo.add_member(workspace_id=workspace_id, user_id=user_id, role=new_role)
            await self._session.commit()
        except IntegrityError:
            # A concurrent request inserted the same pair first.
            await self._session.rollback()
            return member_out(
                await self._require_target_membership(workspace_id=workspace_id, user_id=user_id)
            )
        membership = await self._repo.get_membership(workspace_id=workspace_id, user_id=user.id)
        assert membership is not None

        logger.info(
            "workspace.member.added",
            extra=log_context(workspace_id=workspace_id, user_id=user.id, role=new_role.value),
        )
        self._events.emit(
            MEMBER_ADDED_EVENT,
            {
                "email": user.email,
                "name": user.name,
                "workspace_id": workspace_id,
                "workspace_name": workspace.name,
                "role": new_role.value,
            },
        )
        queue_audit(
            self._events,
            "WORKSPACE_MEMBER_ADDED",
            user_id=actor.id,
            details={"workspace_id": workspace_id, "member_id": user.id, "role": new_role.value},
        )
        return member_out(membership)

    async def _require_target_membership(
        self, *, workspace_id: int, user_id: int
    ) -> WorkspaceMembership:
        membership = await self._repo.get_membership(workspace_id=workspace_id, user_id=user_id)
        if membership is None:
            raise NotFound("Member not found")
        return membership

    async def remove_member(self, *, actor: User, workspace_id: int, user_id: int) -> None:
        await self._require_workspace(workspace_id)
        actor_role = await self._repo.get_role(workspace_id=workspace_id, user_id=actor.id)
        self._enforce(
            can_manage_workspace_members(actor_role),
            actor=actor,
            action="REMOVE_WORKSPACE_MEMBER",
            workspace_id=workspace_id,
        )
        target = await self._require_target_membership(workspace_id=workspace_id, user_id=user_id)
        self._enforce(
            can_change_workspace_member(actor_role, target.role, removing=True),
            actor=actor,
            action="REMOVE_WORKSPACE_MEMBER",
            workspace_id=workspace_id,
            member_id=user_id,
        )

        await self._repo.remove_member(target)
        await self._session.commit()
        logger.info(
            "workspace.member.removed",
            extra=log_context(workspace_id=workspace_id, user_id=actor.id, member_id=user_id),
        )
        queue_audit(
            self._events,
            "WORKSPACE_MEMBER_REMOVED",
            user_id=actor.id,
            details={"workspace_id": workspace_id, "member_id": user_id},
        )

    async def update_member_role(
        self,
        *,
        actor: User,
        workspace_id: int,
        user_id: int,
        role: str | WorkspaceRole,
    ) -> WorkspaceMemberOut:
        await self._require_workspace(workspace_id)
        actor_role = await self._repo.get_role(workspace_id=workspace_id, user_id=actor.id)
        self._enforce(
            can_manage_workspace_members(actor_role),
            actor=actor,
            action="UPDATE_WORKSPACE_MEMBER_ROLE",
            workspace_id=workspace_id,
        )
        new_role = parse_assignable_role(role)
        target = await self._require_target_membership(workspace_id=workspace_id, user_id=user_id)
        self._enforce(
            can_change_workspace_member(actor_role, target.role, removing=False),
            actor=actor,
            action="UPDATE_WORKSPACE_MEMBER_ROLE",
            workspace_id=workspace_id,
            member_id=user_id,
        )

        target.role = new_role
        await self._session.commit()
        logger.info(
            "workspace.member.role_updated",
            extra=log_context(workspace_id=workspace_id, member_id=user_id, role=new_role.value),
        )
        queue_audit(
            self._events,
            "WORKSPACE_MEMBER_ROLE_UPDATED",
            user_id=actor.id,
            details={"workspace_id": workspace_id, "member_id": user_id, "role": new_role.value},
        )
        return member_out(target)


__all__ = [
    "ASSIGNABLE_ROLES",
    "INVITATION_CREATED_EVENT",
    "MEMBER_ADDED_EVENT",
    "WorkspacesService",
    "parse_assignable_role",
]
