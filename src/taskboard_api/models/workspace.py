"""Workspace, membership and invitation models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskboard_api.db import (
    Base,
    CreatedAtMixin,
    IntegerPrimaryKeyMixin,
    UTCDateTime,
    enum_values,
    utc_now,
)

from .user import User


class WorkspaceRole(str, Enum):
    OWNER = "OWNER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class InvitationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


def _workspace_role_type(name: str) -> SAEnum:
    return SAEnum(
        WorkspaceRole,
        name=name,
        native_enum=False,
        length=20,
        values_callable=enum_values,
    )


class Workspace(IntegerPrimaryKeyMixin, CreatedAtMixin, Base):
    """Top-level container; its creator holds the single OWNER membership."""

    __tablename__ = "workspaces"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=False
    )
    memberships: Mapped[list[WorkspaceMembership]] = relationship(
        "WorkspaceMembership",
        back_populates="workspace",
        order_by="WorkspaceMembership.joined_at",
    )


class WorkspaceMembership(Base):
    """Assignment of a user to a workspace with a role."""

    __tablename__ = "workspace_members"

    workspace_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        _workspace_role_type("workspace_role"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    workspace: Mapped[Workspace] = relationship("Workspace", back_populates="memberships")
    user: Mapped[User] = relationship(User, lazy="joined")


class WorkspaceInvitation(IntegerPrimaryKeyMixin, CreatedAtMixin, Base):
    """Pending access for an email address that has no account yet."""

    __tablename__ = "workspace_invitations"
    __table_args__ = (
        UniqueConstraint("workspace_id", "email", name="workspace_invitations_workspace_email_key"),
    )

    workspace_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    invited_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        _workspace_role_type("invitation_role"), nullable=False
    )
    status: Mapped[InvitationStatus] = mapped_column(
        SAEnum(
            InvitationStatus,
            name="invitation_status",
            native_enum=False,
            length=20,
            values_callable=enum_values,
        ),
        nullable=False,
        default=InvitationStatus.PENDING,
    )


__all__ = [
    "InvitationStatus",
    "Workspace",
    "WorkspaceInvitation",
    "WorkspaceMembership",
    "WorkspaceRole",
]
