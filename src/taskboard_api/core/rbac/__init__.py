"""Role-based access decisions."""

from .policy import (
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
    can_view_task,
    can_view_workspace,
)

__all__ = [
    "AccessDecision",
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
