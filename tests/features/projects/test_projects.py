"""Project endpoint tests."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from taskboard_api.features.projects.repository import ProjectsRepository
from taskboard_api.models import (
    AuditLog,
    Notification,
    Project,
    ProjectMembership,
    ProjectRole,
    Task,
    TaskAssignment,
    WorkspaceRole,
)


async def _count(session_factory, model, *criteria) -> int:
    async with session_factory() as session:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        return await session.scalar(stmt)


async def _create_project(client: AsyncClient, headers, workspace_id: int, name: str = "Launch"):
    response = await client.post(
        f"/api/workspaces/{workspace_id}/projects", json={"name": name}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _create_task(client: AsyncClient, headers, project_id: int, assignees: list[int]):
    response = await client.post(
        f"/api/projects/{project_id}/tasks",
        json={"title": "Write docs", "assignedToIds": assignees},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_project_enrolls_every_workspace_member(
    async_client: AsyncClient, make_user, make_workspace, auth_headers, session_factory
) -> None:
    owner = await make_user("Owner")
    member = await make_user("Member")
    viewer = await make_user("Viewer")
    workspace = await make_workspace(
        owner, (member, WorkspaceRole.MEMBER), (viewer, WorkspaceRole.VIEWER)
    )

    project = await _create_project(async_client, auth_headers(member), workspace.id)

    roles = {m["userId"]: m["role"] for m in project["members"]}
    assert roles == {
        member.id: ProjectRole.PROJECT_LEAD.value,
        owner.id: ProjectRole.CONTRIBUTOR.value,
        viewer.id: ProjectRole.CONTRIBUTOR.value,
    }
    assert project["creatorName"] == "Member"
    assert await _count(
        session_factory, ProjectMembership, ProjectMembership.project_id == project["id"]
    ) == 3


@pytest.mark.asyncio
async def test_create_project_requires_workspace_membership(
    async_client: AsyncClient, make_user, make_workspace, auth_headers
) -> None:
    owner = await make_user("Owner")
    stranger = await make_user("Stranger")
    workspace = await make_workspace(owner)

    denied = await async_client.post(
        f"/api/workspaces/{workspace.id}/projects",
        json={"name": "Nope"},
        headers=auth_headers(stranger),
    )
    missing = await async_client.post(
        "/api/workspaces/9999/projects", json={"name": "Nope"}, headers=auth_headers(owner)
    )

    assert denied.status_code == 403
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_list_projects_by_workspace(
    async_client: AsyncClient, make_user, make_workspace, auth_headers
) -> None:
    owner = await make_user("Owner")
    stranger = await make_user("Stranger")
    workspace = await make_workspace(owner)
    await _create_project(async_client, auth_headers(owner), workspace.id, "Alpha")
    await _create_project(async_client, auth_headers(owner), workspace.id, "Beta")

    listing = await async_client.get(
        f"/api/workspaces/{workspace.id}/projects", headers=auth_headers(owner)
    )
    denied = await async_client.get(
        f"/api/workspaces/{workspace.id}/projects", headers=auth_headers(stranger)
    )

    assert sorted(p["name"] for p in listing.json()) == ["Alpha", "Beta"]
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_update_project_owner_or_lead_only(
    async_client: AsyncClient, make_user, make_workspace, auth_headers
) -> None:
    owner = await make_user("Owner")
    lead = await make_user("Lead")
    contributor = await make_user("Contributor")
    workspace = await make_workspace(
        owner, (lead, WorkspaceRole.MEMBER), (contributor, WorkspaceRole.MEMBER)
    )
    project = await _create_project(async_client, auth_headers(lead), workspace.id)

    by_lead = await async_client.patch(
        f"/api/projects/{project['id']}", json={"name": "Renamed"}, headers=auth_headers(lead)
    )
    by_owner = await async_client.patch(
        f"/api/projects/{project['id']}", json={"name": "Again"}, headers=auth_headers(owner)
    )
    by_contributor = await async_client.patch(
        f"/api/projects/{project['id']}", json={"name": "No"}, headers=auth_headers(contributor)
    )

    assert by_lead.json()["name"] == "Renamed"
    assert by_owner.json()["name"] == "Again"
    assert by_contributor.status_code == 403
    assert by_contributor.json()["reason"] == (
        "only the workspace owner or a project lead can modify the project"
    )


@pytest.mark.asyncio
async def test_delete_project_cascades(
    async_client: AsyncClient,
    app,
    make_user,
    make_workspace,
    auth_headers,
    session_factory,
) -> None:
    owner = await make_user("Owner")
    member = await make_user("Member")
    workspace = await make_workspace(owner, (member, WorkspaceRole.MEMBER))
    project = await _create_project(async_client, auth_headers(owner), workspace.id)
    other = await _create_project(async_client, auth_headers(owner), workspace.id, "Other")
    task = await _create_task(async_client, auth_headers(owner), project["id"], [member.id])
    kept = await _create_task(async_client, auth_headers(owner), other["id"], [member.id])
    await app.state.events.drain()
    assert await _count(session_factory, Notification) == 2

    response = await async_client.delete(
        f"/api/projects/{project['id']}", headers=auth_headers(owner)
    )

    assert response.status_code == 200, response.text
    assert response.json() == {"id": project["id"], "deleted": True}
    assert await _count(session_factory, Project, Project.id == project["id"]) == 0
    assert await _count(
        session_factory, ProjectMembership, ProjectMembership.project_id == project["id"]
    ) == 0
    assert await _count(session_factory, Task, Task.project_id == project["id"]) == 0
    assert await _count(session_factory, TaskAssignment, TaskAssignment.task_id == task["id"]) == 0
    assert await _count(
        session_factory, Notification, Notification.related_entity_id == task["id"]
    ) == 0
    # The sibling project is untouched.
    assert await _count(session_factory, Task, Task.id == kept["id"]) == 1
    assert await _count(session_factory, Notification) == 1


@pytest.mark.asyncio
async def test_failed_delete_leaves_everything_in_place(
    async_client: AsyncClient,
    app,
    make_user,
    make_workspace,
    auth_headers,
    session_factory,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    owner = await make_user("Owner")
    member = await make_user("Member")
    workspace = await make_workspace(owner, (member, WorkspaceRole.MEMBER))
    project = await _create_project(async_client, auth_headers(owner), workspace.id)
    task = await _create_task(async_client, auth_headers(owner), project["id"], [member.id])
    await app.state.events.drain()

    async def fail(self, project_id: int) -> None:
        raise RuntimeError("disk full")

    monkeypatch.setattr(ProjectsRepository, "delete_project_row", fail)

    response = await async_client.delete(
        f"/api/projects/{project['id']}", headers=auth_headers(owner)
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to delete project"}
    assert await _count(session_factory, Project, Project.id == project["id"]) == 1
    assert await _count(
        session_factory, ProjectMembership, ProjectMembership.project_id == project["id"]
    ) == 2
    assert await _count(session_factory, Task, Task.id == task["id"]) == 1
    assert await _count(session_factory, TaskAssignment, TaskAssignment.task_id == task["id"]) == 1
    assert await _count(
        session_factory, Notification, Notification.related_entity_id == task["id"]
    ) == 1

    await app.state.events.drain()
    assert await _count(session_factory, AuditLog, AuditLog.action == "DELETE_PROJECT_FAILED") == 1


@pytest.mark.asyncio
async def test_delete_project_denied_for_contributor(
    async_client: AsyncClient, make_user, make_workspace, auth_headers, session_factory
) -> None:
    owner = await make_user("Owner")
    member = await make_user("Member")
    workspace = await make_workspace(owner, (member, WorkspaceRole.MEMBER))
    project = await _create_project(async_client, auth_headers(owner), workspace.id)

    response = await async_client.delete(
        f"/api/projects/{project['id']}", headers=auth_headers(member)
    )

    assert response.status_code == 403
    assert await _count(session_factory, Project) == 1


@pytest.mark.asyncio
async def test_only_leads_change_member_roles(
    async_client: AsyncClient, make_user, make_workspace, auth_headers
) -> None:
    owner = await make_user("Owner")
    lead = await make_user("Lead")
    contributor = await make_user("Contributor")
    workspace = await make_workspace(
        owner, (lead, WorkspaceRole.MEMBER), (contributor, WorkspaceRole.MEMBER)
    )
    project = await _create_project(async_client, auth_headers(lead), workspace.id)
    url = f"/api/projects/{project['id']}/members/{contributor.id}"

    by_owner = await async_client.patch(
        url, json={"role": "PROJECT_VIEWER"}, headers=auth_headers(owner)
    )
    by_lead = await async_client.patch(
        url, json={"role": "PROJECT_VIEWER"}, headers=auth_headers(lead)
    )
    invalid = await async_client.patch(url, json={"role": "BOSS"}, headers=auth_headers(lead))
    missing = await async_client.patch(
        f"/api/projects/{project['id']}/members/9999",
        json={"role": "CONTRIBUTOR"},
        headers=auth_headers(lead),
    )

    assert by_owner.status_code == 403
    assert by_owner.json()["reason"] == "only project leads can change roles"
    assert by_lead.status_code == 200
    assert by_lead.json()["role"] == ProjectRole.PROJECT_VIEWER.value
    assert invalid.status_code == 422
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_remove_member_drops_their_assignments(
    async_client: AsyncClient, app, make_user, make_workspace, auth_headers, session_factory
) -> None:
    owner = await make_user("Owner")
    member = await make_user("Member")
    workspace = await make_workspace(owner, (member, WorkspaceRole.MEMBER))
    project = await _create_project(async_client, auth_headers(owner), workspace.id)
    task = await _create_task(
        async_client, auth_headers(owner), project["id"], [owner.id, member.id]
    )

    response = await async_client.delete(
        f"/api/projects/{project['id']}/members/{member.id}", headers=auth_headers(owner)
    )

    assert response.status_code == 204
    async with session_factory() as session:
        assignees = set(
            (
                await session.execute(
                    select(TaskAssignment.user_id).where(TaskAssignment.task_id == task["id"])
                )
            ).scalars()
        )
    assert assignees == {owner.id}
    assert await _count(
        session_factory,
        ProjectMembership,
        ProjectMembership.project_id == project["id"],
        ProjectMembership.user_id == member.id,
    ) == 0


@pytest.mark.asyncio
async def test_lead_cannot_remove_self(
    async_client: AsyncClient, make_user, make_workspace, auth_headers
) -> None:
    owner = await make_user("Owner")
    workspace = await make_workspace(owner)
    project = await _create_project(async_client, auth_headers(owner), workspace.id)

    response = await async_client.delete(
        f"/api/projects/{project['id']}/members/{owner.id}", headers=auth_headers(owner)
    )

    assert response.status_code == 403
    assert response.json()["reason"] == "project leads cannot remove themselves"


@pytest.mark.asyncio
async def test_remove_unknown_member_is_not_found(
    async_client: AsyncClient, make_user, make_workspace, auth_headers
) -> None:
    owner = await make_user("Owner")
    workspace = await make_workspace(owner)
    project = await _create_project(async_client, auth_headers(owner), workspace.id)

    response = await async_client.delete(
        f"/api/projects/{project['id']}/members/9999", headers=auth_headers(owner)
    )

    assert response.status_code == 404
