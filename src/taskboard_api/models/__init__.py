"""Central exports for Taskboard SQLAlchemy models."""

from .audit import AuditLog
from .auth import PasswordReset, UserDevice
from .notification import Notification, NotificationStatus
from .project import Project, ProjectMembership, ProjectRole
from .push import PushSubscription
from .task import DEFAULT_TASK_STATUS, Task, TaskAssignment
from .user import User, UserStatus
from .workspace import (
    InvitationStatus,
    Workspace,
    WorkspaceInvitation,
    WorkspaceMembership,
    WorkspaceRole,
)

__all__ = [
    "AuditLog",
    "DEFAULT_TASK_STATUS",
    "InvitationStatus",
    "Notification",
    "NotificationStatus",
    "PasswordReset",
    "Project",
    "ProjectMembership",
    "ProjectRole",
    "PushSubscription",
    "Task",
    "TaskAssignment",
    "User",
    "UserDevice",
    "UserStatus",
    "Workspace",
    "WorkspaceInvitation",
    "WorkspaceMembership",
    "WorkspaceRole",
]
