"""Task and task assignment models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskboard_api.db import Base, IntegerPrimaryKeyMixin, TimestampMixin, UTCDateTime, utc_now

from .project import Project
from .user import User

DEFAULT_TASK_STATUS = "TODO"


class Task(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Unit of work inside a project; status is free-form."""

    __tablename__ = "tasks"

    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="NO ACTION"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=DEFAULT_TASK_STATUS, server_default=DEFAULT_TASK_STATUS
    )
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    project: Mapped[Project] = relationship(Project, lazy="joined")
    assignments: Mapped[list[TaskAssignment]] = relationship(
        "TaskAssignment",
        back_populates="task",
        order_by="TaskAssignment.user_id",
    )

    @property
    def assignee_ids(self) -> list[int]:
        return [assignment.user_id for assignment in self.assignments]


class TaskAssignment(Base):
    __tablename__ = "task_assignments"

    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="NO ACTION"), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    task: Mapped[Task] = relationship("Task", back_populates="assignments")
    user: Mapped[User] = relationship(User, lazy="joined")


__all__ = ["DEFAULT_TASK_STATUS", "Task", "TaskAssignment"]
