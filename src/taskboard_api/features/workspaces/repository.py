"""Workspace, membership and invitation persistence helpers."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from taskboard_api.models import (
    InvitationStatus,
    Workspace,
    WorkspaceInvitation,
    WorkspaceMembership,
    WorkspaceRole,
)


class WorkspacesRepository:
    """Query helpers for workspaces and their role store."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ---- Workspaces --------------------------------------------------------

    async def get_workspace(self, workspace_id: int) -> Workspace | None:
        stmt = (
            select(Workspace)
            .options(selectinload(Workspace.memberships))
            .where(Workspace.id == workspace_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, workspace_id: int) -> bool:
        result = await self._session.execute(
            select(Workspace.id).where(Workspace.id == workspace_id)
        )
        return result.scalar_one_or_none() is not None

    async def list_all(self) -> list[Workspace]:
        stmt = select(Workspace).options(selectinload(Workspace.memberships)).order_by(Workspace.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create_workspace(self, *, name: str, created_by: int) -> Workspace:
        workspace = Workspace(name=name, created_by=created_by)
        self._session.add(workspace)
        await self._session.flush()
        return workspace

    # ---- Memberships -------------------------------------------------------

    async def get_role(self, *, workspace_id: int, user_id: int) -> WorkspaceRole | None:
        stmt = select(WorkspaceMembership.role).where(
            WorkspaceMembership.workspace_id == workspace_id,
            WorkspaceMembership.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_membership(self, *, workspace_id: int, user_id: int) -> WorkspaceMembership | None:
        stmt = (
            select(WorkspaceMembership)
            .where(
                WorkspaceMembership.workspace_id == workspace_id,
                WorkspaceMembership.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_members(self, workspace_id: int) -> list[WorkspaceMembership]:
        stmt = (
            select(WorkspaceMembership)
            .where(WorkspaceMembership.workspace_id == workspace_id)
            .order_by(WorkspaceMembership.joined_at, WorkspaceMembership.user_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_for_user(self, user_id: int) -> list[WorkspaceMembership]:
        stmt = (
            select(WorkspaceMembership)
            .options(selectinload(WorkspaceMembership.workspace))
            .where(WorkspaceMembership.user_id == user_id)
            .order_by(WorkspaceMembership.workspace_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def add_member(
        self, *, workspace_id: int, user_id: int, role: WorkspaceRole
    ) -> WorkspaceMembership:
        membership = WorkspaceMembership(workspace_id=workspace_id, user_id=user_id, role=role)
        self._session.add(membership)
        await self._session.flush()
        return membership

    async def remove_member(self, membership: WorkspaceMembership) -> None:
        await self._session.execute(
            delete(WorkspaceMembership).where(
                WorkspaceMembership.workspace_id == membership.workspace_id,
                WorkspaceMembership.user_id == membership.user_id,
            )
        )

    # ---- Invitations -------------------------------------------------------

    async def get_invitation(self, *, workspace_id: int, email: str) -> WorkspaceInvitation | None:
        stmt = select(WorkspaceInvitation).where(
            WorkspaceInvitation.workspace_id == workspace_id,
            WorkspaceInvitation.email == email,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_invitation(
        self,
        *,
        workspace_id: int,
        email: str,
        role: WorkspaceRole,
        invited_by: int,
    ) -> WorkspaceInvitation:
        invitation = WorkspaceInvitation(
            workspace_id=workspace_id,
            email=email,
            role=role,
            invited_by=invited_by,
            status=InvitationStatus.PENDING,
        )
        self._session.add(invitation)
        await self._session.flush()
        return invitation

    async def list_pending_invitations(self, email: str) -> list[WorkspaceInvitation]:
        stmt = (
            select(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.email == email,
                WorkspaceInvitation.status == InvitationStatus.PENDING,
            )
            .order_by(WorkspaceInvitation.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


__all__ = ["WorkspacesRepository"]
