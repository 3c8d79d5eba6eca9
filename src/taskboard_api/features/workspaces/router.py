"""Workspace and workspace membership endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from taskboard_api.app.dependencies import CurrentUser, get_workspaces_service

from .schemas import (
    UserWorkspaceOut,
    WorkspaceCreate,
    WorkspaceMemberAdd,
    WorkspaceMemberOut,
    WorkspaceMemberRoleUpdate,
    WorkspaceOut,
)
from .service import WorkspacesService

router = APIRouter(tags=["workspaces"])

WorkspacesServiceDep = Annotated[WorkspacesService, Depends(get_workspaces_service)]
WORKSPACE_ID_PARAM = Annotated[int, Path(description="Workspace identifier.")]
USER_ID_PARAM = Annotated[int, Path(description="Member user identifier.")]


@router.get(
    "/workspaces",
    name="getUserWorkspaces",
    response_model=list[UserWorkspaceOut],
    summary="List the workspaces the current user belongs to",
)
async def list_user_workspaces(
    actor: CurrentUser, service: WorkspacesServiceDep
) -> list[UserWorkspaceOut]:
    return await service.list_user_workspaces(actor=actor)


@router.post(
    "/workspaces",
    name="createWorkspace",
    response_model=WorkspaceOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace owned by the current user",
)
async def create_workspace(
    payload: WorkspaceCreate, actor: CurrentUser, service: WorkspacesServiceDep
) -> WorkspaceOut:
    return await service.create_workspace(actor=actor, name=payload.name)


@router.get(
    "/admin/workspaces",
    name="getAllWorkspaces",
    response_model=list[WorkspaceOut],
    summary="List every workspace (administrator only)",
)
async def list_all_workspaces(
    actor: CurrentUser, service: WorkspacesServiceDep
) -> list[WorkspaceOut]:
    return await service.list_all_workspaces(actor=actor)


@router.get(
    "/workspaces/{workspace_id}",
    name="getWorkspace",
    response_model=WorkspaceOut,
    summary="Retrieve a workspace with its members",
    responses={
        status.HTTP_403_FORBIDDEN: {"description": "Not a workspace member."},
        status.HTTP_404_NOT_FOUND: {"description": "Workspace not found."},
    },
)
async def get_workspace(
    workspace_id: WORKSPACE_ID_PARAM, actor: CurrentUser, service: WorkspacesServiceDep
) -> WorkspaceOut:
    return await service.get_workspace(actor=actor, workspace_id=workspace_id)


@router.post(
    "/workspaces/{workspace_id}/members",
    name="addWorkspaceMemberByEmail",
    response_model=WorkspaceMemberOut,
    summary="Add a registered user or invite an email address",
    responses={
        status.HTTP_403_FORBIDDEN: {"description": "Workspace owner required."},
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"description": "Invalid role."},
    },
)
async def add_member_by_email(
    workspace_id: WORKSPACE_ID_PARAM,
    payload: WorkspaceMemberAdd,
    actor: CurrentUser,
    service: WorkspacesServiceDep,
) -> WorkspaceMemberOut:
    return await service.add_member_by_email(
        actor=actor, workspace_id=workspace_id, email=str(payload.email), role=payload.role
    )


@router.patch(
    "/workspaces/{workspace_id}/members/{user_id}",
    name="updateWorkspaceMemberRole",
    response_model=WorkspaceMemberOut,
    summary="Change a member's workspace role",
)
async def update_member_role(
    workspace_id: WORKSPACE_ID_PARAM,
    user_id: USER_ID_PARAM,
    payload: WorkspaceMemberRoleUpdate,
    actor: CurrentUser,
    service: WorkspacesServiceDep,
) -> WorkspaceMemberOut:
    return await service.update_member_role(
        actor=actor, workspace_id=workspace_id, user_id=user_id, role=payload.role
    )


@router.delete(
    "/workspaces/{workspace_id}/members/{user_id}",
    name="removeWorkspaceMember",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a member from the workspace",
)
async def remove_member(
    workspace_id: WORKSPACE_ID_PARAM,
    user_id: USER_ID_PARAM,
    actor: CurrentUser,
    service: WorkspacesServiceDep,
) -> Response:
    await service.remove_member(actor=actor, workspace_id=workspace_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
