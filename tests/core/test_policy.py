from __future__ import annotations

import pytest

from taskboard_api.core.errors import AuthorizationDenied
from taskboard_api.core.rbac.policy import (
    ASSIGNEES_ONLY,
    CANNOT_CHANGE_OWNER_ROLE,
    CANNOT_REMOVE_OWNER,
    LEAD_CANNOT_REMOVE_SELF,
    NOT_WORKSPACE_MEMBER,
    WORKSPACE_OWNER_REQUIRED,
    AccessDecision,
    can_administer,
    can_change_project_member_role,
    can_change_workspace_member,
    can_create_project,
    can_create_task,
    can_manage_workspace_members,
    can_mark_notification_seen,
    can_modify_project,
    can_remove_project_member,
    can_update_task,
    can_view_workspace,
)
from taskboard_api.models import ProjectRole, WorkspaceRole


def test_denied_decision_enforces_with_reason() -> None:
    decision = AccessDecision.deny(ASSIGNEES_ONLY)

    assert not decision
    with pytest.raises(AuthorizationDenied) as excinfo:
        decision.enforce()
    assert excinfo.value.reason == ASSIGNEES_ONLY
    assert str(excinfo.value) == f"Unauthorized: {ASSIGNEES_ONLY}"


def test_allowed_decision_is_silent() -> None:
    decision = AccessDecision.allow()

    assert decision
    decision.enforce()


@pytest.mark.parametrize("role", list(WorkspaceRole))
def test_any_workspace_role_can_view_and_create_projects(role: WorkspaceRole) -> None:
    assert can_view_workspace(role)
    assert can_create_project(role)


def test_non_member_cannot_view_workspace() -> None:
    assert can_view_workspace(None).reason == NOT_WORKSPACE_MEMBER
    assert not can_create_project(None)


def test_only_owner_manages_members() -> None:
    assert can_manage_workspace_members(WorkspaceRole.OWNER)
    assert can_manage_workspace_members(WorkspaceRole.MEMBER).reason == WORKSPACE_OWNER_REQUIRED
    assert not can_manage_workspace_members(WorkspaceRole.VIEWER)
    assert can_manage_workspace_members(None).reason == NOT_WORKSPACE_MEMBER


def test_owner_membership_is_immutable() -> None:
    removal = can_change_workspace_member(WorkspaceRole.OWNER, WorkspaceRole.OWNER, removing=True)
    change = can_change_workspace_member(WorkspaceRole.OWNER, WorkspaceRole.OWNER, removing=False)

    assert removal.reason == CANNOT_REMOVE_OWNER
    assert change.reason == CANNOT_CHANGE_OWNER_ROLE
    assert can_change_workspace_member(WorkspaceRole.OWNER, WorkspaceRole.VIEWER, removing=True)


@pytest.mark.parametrize(
    ("workspace_role", "project_role", "allowed"),
    [
        (WorkspaceRole.OWNER, None, True),
        (WorkspaceRole.OWNER, ProjectRole.CONTRIBUTOR, True),
        (WorkspaceRole.MEMBER, ProjectRole.PROJECT_LEAD, True),
        (WorkspaceRole.MEMBER, ProjectRole.CONTRIBUTOR, False),
        (WorkspaceRole.VIEWER, ProjectRole.PROJECT_VIEWER, False),
        (None, None, False),
    ],
)
def test_modify_project_requires_owner_or_lead(
    workspace_role: WorkspaceRole | None,
    project_role: ProjectRole | None,
    allowed: bool,
) -> None:
    assert bool(can_modify_project(workspace_role, project_role)) is allowed


def test_only_leads_change_project_roles() -> None:
    assert can_change_project_member_role(ProjectRole.PROJECT_LEAD)
    assert not can_change_project_member_role(ProjectRole.CONTRIBUTOR)
    assert not can_change_project_member_role(None)


def test_lead_cannot_remove_self() -> None:
    assert can_remove_project_member(ProjectRole.PROJECT_LEAD, actor_id=1, target_user_id=2)
    decision = can_remove_project_member(ProjectRole.PROJECT_LEAD, actor_id=1, target_user_id=1)
    assert decision.reason == LEAD_CANNOT_REMOVE_SELF
    assert not can_remove_project_member(ProjectRole.CONTRIBUTOR, actor_id=1, target_user_id=2)


def test_task_rules() -> None:
    assert can_create_task(ProjectRole.PROJECT_VIEWER)
    assert not can_create_task(None)
    assert can_update_task(3, [1, 3])
    assert can_update_task(3, []).reason == ASSIGNEES_ONLY


def test_notification_and_admin_rules() -> None:
    assert can_mark_notification_seen(5, 5)
    assert not can_mark_notification_seen(5, 6)
    assert can_administer(True)
    assert not can_administer(False)
