"""Project and project membership models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String
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


class ProjectRole(str, Enum):
    PROJECT_LEAD = "PROJECT_LEAD"
    CONTRIBUTOR = "CONTRIBUTOR"
    PROJECT_VIEWER = "PROJECT_VIEWER"


class Project(IntegerPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "projects"

    workspace_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workspaces.id", ondelete="NO ACTION"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=False
    )

    creator: Mapped[User] = relationship(User, lazy="joined")
    memberships: Mapped[list[ProjectMembership]] = relationship(
        "ProjectMembership",
        back_populates="project",
        order_by="ProjectMembership.joined_at",
    )


class ProjectMembership(Base):
    """Assignment of a user to a project with a project-level role."""

    __tablename__ = "project_members"

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="NO ACTION"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[ProjectRole] = mapped_column(
        SAEnum(
            ProjectRole,
            name="project_role",
            native_enum=False,
            length=20,
            values_callable=enum_values,
        ),
        nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    project: Mapped[Project] = relationship("Project", back_populates="memberships")
    user: Mapped[User] = relationship(User, lazy="joined")


__all__ = ["Project", "ProjectMembership", "ProjectRole"]
