"""Access decisions for workspace, project, task and notification operations.

Every function here is pure: callers load the actor's role records from the
store and pass them in. A missing role record (``None``) never grants access.
Denials carry the precondition that failed so callers can surface it.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from taskboard_api.core.errors import AuthorizationDenied
from taskboard_api.models import ProjectRole, WorkspaceRole

NOT_WORKSPACE_MEMBER = "not a workspace member"
WORKSPACE_OWNER_REQUIRED = "only the workspace owner can manage members"
CANNOT_REMOVE_OWNER = "cannot remove the workspace owner"
CANNOT_CHANGE_OWNER_ROLE = "cannot change the workspace owner's role"
OWNER_OR_LEAD_REQUIRED = "only the workspace owner or a project lead can modify the project"
LEADS_CHANGE_ROLES = "only project leads can change roles"
LEADS_REMOVE_MEMBERS = "only project leads can remove members"
LEAD_CANNOT_REMOVE_SELF = "project leads cannot remove themselves"
NOT_PROJECT_MEMBER = "not a project member"
ASSIGNEES_ONLY = "only assignees can update the task"
RECIPIENT_ONLY = "only the recipient can mark a notification as seen"
ADMIN_REQUIRED = "admin privileges required"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> AccessDecision:
        return cls(False, reason)

    def enforce(self) -> None:
        """Raise :class:`AuthorizationDenied` when the decision is a denial."""
        if not self.allowed:
            raise AuthorizationDenied(self.reason or "access denied")

    def __bool__(self) -> bool:
        return self.allowed


# ---- Workspace --------------------------------------------------------------

def can_view_workspace(role: WorkspaceRole | None) -> AccessDecision:
    if role is None:
        return AccessDecision.deny(NOT_WORKSPACE_MEMBER)
    return AccessDecision.allow()


def can_manage_workspace_members(role: WorkspaceRole | None) -> AccessDecision:
    if role is None:
        return AccessDecision.deny(NOT_WORKSPACE_MEMBER)
    if role is not WorkspaceRole.OWNER:
        return AccessDecision.deny(WORKSPACE_OWNER_REQUIRED)
    return AccessDecision.allow()


def can_change_workspace_member(
    actor_role: WorkspaceRole | None,
    target_role: WorkspaceRole,
    *,
    removing: bool,
) -> AccessDecision:
    """Owner-only, and the owner's own membership is immutable."""
    decision = can_manage_workspace_members(actor_role)
    if not decision:
        return decision
    if target_role is WorkspaceRole.OWNER:
        return AccessDecision.deny(CANNOT_REMOVE_OWNER if removing else CANNOT_CHANGE_OWNER_ROLE)
    return AccessDecision.allow()


def can_create_project(role: WorkspaceRole | None) -> AccessDecision:
    return can_view_workspace(role)


# ---- Project ----------------------------------------------------------------

def can_modify_project(
    workspace_role: WorkspaceRole | None,
    project_role: ProjectRole | None,
) -> AccessDecision:
    """Update or delete: workspace owner, or a lead of this project."""
    if workspace_role is WorkspaceRole.OWNER or project_role is ProjectRole.PROJECT_LEAD:
        return AccessDecision.allow()
    return AccessDecision.deny(OWNER_OR_LEAD_REQUIRED)


def can_change_project_member_role(project_role: ProjectRole | None) -> AccessDecision:
    # The workspace owner does not bypass this rule.
    if project_role is not ProjectRole.PROJECT_LEAD:
        return AccessDecision.deny(LEADS_CHANGE_ROLES)
    return AccessDecision.allow()


def can_remove_project_member(
    project_role: ProjectRole | None,
    *,
    actor_id: int,
    target_user_id: int,
) -> AccessDecision:
    if project_role is not ProjectRole.PROJECT_LEAD:
        return AccessDecision.deny(LEADS_REMOVE_MEMBERS)
    if actor_id == target_user_id:
        return AccessDecision.deny(LEAD_CANNOT_REMOVE_SELF)
    return AccessDecision.allow()


# ---- Task -------------------------------------------------------------------

def can_create_task(project_role: ProjectRole | None) -> AccessDecision:
    if project_role is None:
        return AccessDecision.deny(NOT_PROJECT_MEMBER)
    return AccessDecision.allow()


def can_view_task(project_role: ProjectRole | None) -> AccessDecision:
    return can_create_task(project_role)


def can_update_task(actor_id: int, assignee_ids: Collection[int]) -> AccessDecision:
    if actor_id not in assignee_ids:
        return AccessDecision.deny(ASSIGNEES_ONLY)
    return AccessDecision.allow()


# ---- Notification / admin ---------------------------------------------------

def can_mark_notification_seen(actor_id: int, recipient_id: int) -> AccessDecision:
    if actor_id != recipient_id:
        return AccessDecision.deny(RECIPIENT_ONLY)
    return AccessDecision.allow()


def can_administer(is_admin: bool) -> AccessDecision:
    if not is_admin:
        return AccessDecision.deny(ADMIN_REQUIRED)
    return AccessDecision.allow()


__all__ = [
    "AccessDecision",
    "ADMIN_REQUIRED",
    "ASSIGNEES_ONLY",
    "CANNOT_CHANGE_OWNER_ROLE",
    "CANNOT_REMOVE_OWNER",
    "LEAD_CANNOT_REMOVE_SELF",
    "LEADS_CHANGE_ROLES",
    "LEADS_REMOVE_MEMBERS",
    "NOT_PROJECT_MEMBER",
    "NOT_WORKSPACE_MEMBER",
    "OWNER_OR_LEAD_REQUIRED",
    "RECIPIENT_ONLY",
    "WORKSPACE_OWNER_REQUIRED",
    "can_administer",
    "can_change_project_member_role",
    "can_change_workspace_member",
    "can_create_project",
    "can_create_task",
    "can_manage_workspace_members",
    "can_mark_notification_seen",
    "can_modify_project",
    "can_remove_project_member",
    "can_update_task",
    "can_view_task",
    "can_view_workspace",
]
