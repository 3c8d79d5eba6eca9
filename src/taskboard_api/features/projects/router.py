"""Project and project membership endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status

from taskboard_api.app.dependencies import CurrentUser, get_projects_service

from .schemas import (
    ProjectCreate,
    ProjectDeleted,
    ProjectMemberOut,
    ProjectMemberRoleUpdate,
    ProjectOut,
    ProjectUpdate,
)
from .service import ProjectsService

router = APIRouter(tags=["projects"])

ProjectsServiceDep = Annotated[ProjectsService, Depends(get_projects_service)]
WORKSPACE_ID_PARAM = Annotated[int, Path(description="Workspace identifier.")]
PROJECT_ID_PARAM = Annotated[int, Path(description="Project identifier.")]
USER_ID_PARAM = Annotated[int, Path(description="Member user identifier.")]


@router.get(
    "/workspaces/{workspace_id}/projects",
    name="getProjectsByWorkspace",
    response_model=list[ProjectOut],
    summary="List a workspace's projects, newest first",
)
async def list_projects(
    workspace_id: WORKSPACE_ID_PARAM, actor: CurrentUser, service: ProjectsServiceDep
) -> list[ProjectOut]:
    return await service.list_for_workspace(actor=actor, workspace_id=workspace_id)


@router.post(
    "/workspaces/{workspace_id}/projects",
    name="createProject",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project led by the current user",
)
async def create_project(
    workspace_id: WORKSPACE_ID_PARAM,
    payload: ProjectCreate,
    actor: CurrentUser,
    service: ProjectsServiceDep,
) -> ProjectOut:
    return await service.create_project(actor=actor, workspace_id=workspace_id, name=payload.name)


@router.patch(
    "/projects/{project_id}",
    name="updateProject",
    response_model=ProjectOut,
    summary="Rename a project (workspace owner or project lead)",
)
async def update_project(
    project_id: PROJECT_ID_PARAM,
    payload: ProjectUpdate,
    actor: CurrentUser,
    service: ProjectsServiceDep,
) -> ProjectOut:
    return await service.update_project(actor=actor, project_id=project_id, name=payload.name)


@router.delete(
    "/projects/{project_id}",
    name="deleteProject",
    response_model=ProjectDeleted,
    summary="Delete a project with its tasks, assignments and notifications",
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"description": "Deletion rolled back."},
    },
)
async def delete_project(
    project_id: PROJECT_ID_PARAM, actor: CurrentUser, service: ProjectsServiceDep
) -> ProjectDeleted:
    await service.delete_project(actor=actor, project_id=project_id)
    return ProjectDeleted(id=project_id)


@router.patch(
    "/projects/{project_id}/members/{user_id}",
    name="updateProjectMemberRole",
    response_model=ProjectMemberOut,
    summary="Change a member's project role (project lead only)",
)
async def update_member_role(
    project_id: PROJECT_ID_PARAM,
    user_id: USER_ID_PARAM,
    payload: ProjectMemberRoleUpdate,
    actor: CurrentUser,
    service: ProjectsServiceDep,
) -> ProjectMemberOut:
    return await service.update_member_role(
        actor=actor, project_id=project_id, user_id=user_id, role=payload.role
    )


@router.delete(
    "/projects/{project_id}/members/{user_id}",
    name="removeProjectMember",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a member from the project (project lead only)",
)
async def remove_member(
    project_id: PROJECT_ID_PARAM,
    user_id: USER_ID_PARAM,
    actor: CurrentUser,
    service: ProjectsServiceDep,
) -> Response:
    await service.remove_member(actor=actor, project_id=project_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
