"""Task services: creation, assignee-gated updates and AI helpers."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import NotFound, UpstreamUnavailable, ValidationFailure
from taskboard_api.core.rbac import (
    AccessDecision,
    can_create_task,
    can_update_task,
    can_view_task,
)
from taskboard_api.features.audit import queue_audit
from taskboard_api.features.projects.repository import ProjectsRepository
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.infra.text_generation import TextGenerator
from taskboard_api.models import DEFAULT_TASK_STATUS, Project, ProjectRole, Task, User

from .repository import TasksRepository
from .schemas import TaskOut

logger = logging.getLogger(__name__)

TASK_ASSIGNED_EVENT = "task.assigned"
TASK_UPDATED_EVENT = "task.updated"
TASK_CHANGED_EVENT = "task.changed"

NO_SUMMARY = "No summary available."

GENERATE_PROMPT = "Generate a clear bullet list of project tasks:\n{prompt}"
SUMMARY_PROMPT = "Summarize this task in 1-2 clear sentences:\n\n{text}"

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")
_MAX_TITLE = 255


def parse_task_lines(text: str) -> list[str]:
    """Split generated text into task titles, one per non-empty line."""

    titles: list[str] = []
    for line in text.splitlines():
        title = _LIST_MARKER.sub("", line).strip().strip("*").strip()
        if title:
            titles.append(title[:_MAX_TITLE])
    return titles


def task_out(task: Task) -> TaskOut:
    return TaskOut(
        id=task.id,
        project_id=task.project_id,
        title=task.title,
        description=task.description,
        status=task.status,
        created_by=task.created_by,
        assigned_to_ids=task.assignee_ids,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


class TasksService:
    """Task mutations gated by project membership and assignment."""

    def __init__(
        self,
        *,
        session: AsyncSession,
        events: EventDispatcher,
        text_generator: TextGenerator,
    ) -> None:
        self._session = session
        self._events = events
        self._text = text_generator
        self._repo = TasksRepository(session)
        self._projects = ProjectsRepository(session)

    def _enforce(self, decision: AccessDecision, *, actor: User, action: str, **details) -> None:
        if not decision:
            logger.info(
                "task.access.denied",
                extra=log_context(user_id=actor.id, action=action, reason=decision.reason),
            )
            queue_audit(
                self._events,
                f"{action}_DENIED",
                user_id=actor.id,
                level="warn",
                details={"reason": decision.reason, **details},
            )
        decision.enforce()

    async def _require_project_member(
        self,
        *,
        actor: User,
        project_id: int,
        action: str,
        check: Callable[[ProjectRole | None], AccessDecision] = can_create_task,
    ) -> Project:
        project = await self._projects.get_project(project_id)
        if project is None:
            raise NotFound("Project not found")
        role = await self._projects.get_role(project_id=project_id, user_id=actor.id)
        self._enforce(check(role), actor=actor, action=action, project_id=project_id)
        return project

    async def _require_task(self, task_id: int) -> Task:
        task = await self._repo.get_task(task_id)
        if task is None:
            raise NotFound("Task not found")
        return task

    async def _validate_assignees(self, project_id: int, user_ids: Iterable[int]) -> list[int]:
        wanted = sorted(set(user_ids))
        outsiders = set(wanted) - await self._projects.member_ids(project_id)
        if outsiders:
            raise ValidationFailure(
                f"Assignees must be project members: {', '.join(map(str, sorted(outsiders)))}"
            )
        return wanted

    def _emit_assigned(self, task: Task, project: Project, recipients: list[int], actor: User) -> None:
        if not recipients:
            return
        self._events.emit(
            TASK_ASSIGNED_EVENT,
            {
                "task_id": task.id,
                "task_title": task.title,
                "project_id": project.id,
                "project_name": project.name,
                "actor_id": actor.id,
                "actor_name": actor.name,
                "recipient_ids": recipients,
            },
        )

    def _emit_changed(self, out: TaskOut, workspace_id: int) -> None:
        self._events.emit(
            TASK_CHANGED_EVENT,
            {"workspace_id": workspace_id, "task": out.model_dump(mode="json", by_alias=True)},
        )

    async def create_task(
        self,
        *,
        actor: User,
        project_id: int,
        title: str,
        description: str | None = None,
        status: str = DEFAULT_TASK_STATUS,
        assignee_ids: Iterable[int] = (),
    ) -> TaskOut:
        project = await self._require_project_member(
            actor=actor, project_id=project_id, action="CREATE_TASK"
        )
        title = title.strip()
        if not title:
            raise ValidationFailure("Task title must not be empty")
        assignees = await self._validate_assignees(project_id, assignee_ids)

        task = await self._repo.create_task(
            project_id=project_id,
            title=title,
            description=description,
            status=status or DEFAULT_TASK_STATUS,
            created_by=actor.id,
        )
        await self._repo.add_assignees(task_id=task.id, user_ids=assignees)
        await self._session.commit()

        task = await self._require_task(task.id)
        out = task_out(task)
        logger.info(
            "task.create.success",
            extra=log_context(project_id=project_id, task_id=task.id, user_id=actor.id),
        )
        self._emit_assigned(task, project, [uid for uid in assignees if uid != actor.id], actor)
        self._emit_changed(out, project.workspace_id)
        queue_audit(
            self._events,
            "TASK_CREATED",
            user_id=actor.id,
            details={"project_id": project_id, "task_id": task.id, "assignee_ids": assignees},
        )
        return out

    async def update_task(
        self,
        *,
        actor: User,
        task_id: int,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
        assignee_ids: Iterable[int] | None = None,
    ) -> TaskOut:
        """Coalesce the supplied fields onto the task.

        A supplied assignee set replaces the previous one entirely and every
        member of the new set is notified. Otherwise a status change notifies
        the remaining assignees.
        """
        task = await self._require_task(task_id)
        self._enforce(
            can_update_task(actor.id, task.assignee_ids),
            actor=actor,
            action="UPDATE_TASK",
            task_id=task_id,
        )
        project = task.project
        previous_status = task.status

        assignees: list[int] | None = None
        if assignee_ids is not None:
            assignees = await self._validate_assignees(task.project_id, assignee_ids)
        if title is not None:
            if not title.strip():
                raise ValidationFailure("Task title must not be empty")
            task.title = title.strip()
        if description is not None:
            task.description = description
        if status is not None:
            task.status = status
        if assignees is not None:
            await self._repo.replace_assignees(task_id=task_id, user_ids=assignees)
        await self._session.commit()

        task = await self._require_task(task_id)
        out = task_out(task)
        logger.info(
            "task.update.success",
            extra=log_context(
                project_id=task.project_id,
                task_id=task_id,
                user_id=actor.id,
                status=task.status,
                reassigned=assignees is not None,
            ),
        )
        if assignees is not None:
            self._emit_assigned(task, project, assignees, actor)
        elif task.status != previous_status:
            self._events.emit(
                TASK_UPDATED_EVENT,
                {
                    "task_id": task.id,
                    "task_title": task.title,
                    "project_name": project.name,
                    "status": task.status,
                    "previous_status": previous_status,
                    "actor_name": actor.name,
                    "recipient_ids": [uid for uid in task.assignee_ids if uid != actor.id],
                },
            )
        self._emit_changed(out, project.workspace_id)
        queue_audit(
            self._events,
            "TASK_UPDATED",
            user_id=actor.id,
            details={"task_id": task_id, "status": task.status},
        )
        return out

    async def generate_tasks_from_prompt(
        self, *, actor: User, project_id: int, prompt: str
    ) -> list[TaskOut]:
        """Create one TODO task per generated line, all assigned to ``actor``."""
        project = await self._require_project_member(
            actor=actor, project_id=project_id, action="GENERATE_TASKS"
        )
        try:
            text = await self._text.complete(GENERATE_PROMPT.format(prompt=prompt.strip()))
        except UpstreamUnavailable:
            logger.warning(
                "task.generate.upstream_failed",
                extra=log_context(project_id=project_id, user_id=actor.id),
                exc_info=True,
            )
            return []

        titles = parse_task_lines(text)
        created: list[int] = []
        for title in titles:
            task = await self._repo.create_task(
                project_id=project_id,
                title=title,
                description=None,
                status=DEFAULT_TASK_STATUS,
                created_by=actor.id,
            )
            await self._repo.add_assignees(task_id=task.id, user_ids=[actor.id])
            created.append(task.id)
        await self._session.commit()

        results: list[TaskOut] = []
        for task_id in created:
            out = task_out(await self._require_task(task_id))
            self._emit_changed(out, project.workspace_id)
            results.append(out)
        logger.info(
            "task.generate.success",
            extra=log_context(project_id=project_id, user_id=actor.id, count=len(results)),
        )
        queue_audit(
            self._events,
            "TASKS_GENERATED",
            user_id=actor.id,
            details={"project_id": project_id, "task_ids": created},
        )
        return results

    async def summarize_task(self, *, actor: User, task_id: int) -> str:
        task = await self._require_task(task_id)
        await self._require_project_member(
            actor=actor, project_id=task.project_id, action="SUMMARIZE_TASK",
            check=can_view_task,
        )
        text = task.title if not task.description else f"{task.title}\n\n{task.description}"
        try:
            summary = (await self._text.complete(SUMMARY_PROMPT.format(text=text))).strip()
        except UpstreamUnavailable:
            logger.warning(
                "task.summary.upstream_failed",
                extra=log_context(task_id=task_id, user_id=actor.id),
                exc_info=True,
            )
            return NO_SUMMARY
        return summary or NO_SUMMARY


__all__ = [
    "NO_SUMMARY",
    "TASK_ASSIGNED_EVENT",
    "TASK_CHANGED_EVENT",
    "TASK_UPDATED_EVENT",
    "TasksService",
    "parse_task_lines",
    "task_out",
]
