"""Task endpoints and the ``taskStatusUpdated`` websocket stream."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, WebSocket, WebSocketDisconnect, status

from taskboard_api.app.dependencies import CurrentUser, get_tasks_service
from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import AuthenticationFailure
from taskboard_api.core.rbac import can_view_workspace
from taskboard_api.core.security import TokenIssuer
from taskboard_api.db import Database, session_scope
from taskboard_api.features.workspaces.repository import WorkspacesRepository

from .realtime import TaskEventBroker, TaskSubscriber
from .schemas import GenerateTasksRequest, TaskCreate, TaskOut, TaskSummaryOut, TaskUpdate
from .service import TasksService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])

TasksServiceDep = Annotated[TasksService, Depends(get_tasks_service)]
PROJECT_ID_PARAM = Annotated[int, Path(description="Project identifier.")]
TASK_ID_PARAM = Annotated[int, Path(description="Task identifier.")]


@router.post(
    "/projects/{project_id}/tasks",
    name="createTask",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task in a project",
)
async def create_task(
    project_id: PROJECT_ID_PARAM,
    payload: TaskCreate,
    actor: CurrentUser,
    service: TasksServiceDep,
) -> TaskOut:
    return await service.create_task(
        actor=actor,
        project_id=project_id,
        title=payload.title,
        description=payload.description,
        status=payload.status,
        assignee_ids=payload.assigned_to_ids,
    )


@router.post(
    "/projects/{project_id}/tasks/generate",
    name="generateTasksFromPrompt",
    response_model=list[TaskOut],
    status_code=status.HTTP_201_CREATED,
    summary="Generate tasks from a free-text prompt",
)
async def generate_tasks(
    project_id: PROJECT_ID_PARAM,
    payload: GenerateTasksRequest,
    actor: CurrentUser,
    service: TasksServiceDep,
) -> list[TaskOut]:
    return await service.generate_tasks_from_prompt(
        actor=actor, project_id=project_id, prompt=payload.prompt
    )


@router.patch(
    "/tasks/{task_id}",
    name="updateTask",
    response_model=TaskOut,
    summary="Update a task (assignees only); omitted fields are kept",
)
async def update_task(
    task_id: TASK_ID_PARAM,
    payload: TaskUpdate,
    actor: CurrentUser,
    service: TasksServiceDep,
) -> TaskOut:
    return await service.update_task(
        actor=actor,
        task_id=task_id,
        title=payload.title,
        description=payload.description,
        status=payload.status,
        assignee_ids=payload.assigned_to_ids,
    )


@router.get(
    "/tasks/{task_id}/summary",
    name="summarizeTask",
    response_model=TaskSummaryOut,
    summary="Summarize a task in one or two sentences",
)
async def summarize_task(
    task_id: TASK_ID_PARAM, actor: CurrentUser, service: TasksServiceDep
) -> TaskSummaryOut:
    summary = await service.summarize_task(actor=actor, task_id=task_id)
    return TaskSummaryOut(task_id=task_id, summary=summary)


# ---- Realtime ---------------------------------------------------------------


async def _authorize_socket(websocket: WebSocket, workspace_id: int, token: str | None) -> int | None:
    tokens: TokenIssuer = websocket.app.state.tokens
    database: Database = websocket.app.state.database
    try:
        claims = tokens.verify(token)
    except AuthenticationFailure as exc:
        logger.info("tasks.realtime.rejected", extra=log_context(reason=exc.detail))
        return None
    async with session_scope(database) as session:
        role = await WorkspacesRepository(session).get_role(
            workspace_id=workspace_id, user_id=claims.user_id
        )
    decision = can_view_workspace(role)
    if not decision:
        logger.info(
            "tasks.realtime.rejected",
            extra=log_context(
                workspace_id=workspace_id, user_id=claims.user_id, reason=decision.reason
            ),
        )
        return None
    return claims.user_id


async def _forward(websocket: WebSocket, subscriber: TaskSubscriber) -> None:
    while True:
        await websocket.send_json(await subscriber.next_event())


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    with suppress(WebSocketDisconnect):
        while True:
            await websocket.receive_text()


@router.websocket("/workspaces/{workspace_id}/tasks/updates", name="taskStatusUpdated")
async def task_status_updated(
    websocket: WebSocket,
    workspace_id: int,
    token: Annotated[str | None, Query()] = None,
) -> None:
    """Stream every task change in the workspace to a member."""

    user_id = await _authorize_socket(websocket, workspace_id, token)
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    broker: TaskEventBroker = websocket.app.state.broker
    await websocket.accept()
    subscriber = broker.subscribe(workspace_id=workspace_id, user_id=user_id)
    sender = asyncio.create_task(_forward(websocket, subscriber))
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning(
                    "tasks.realtime.stream_failed",
                    extra=log_context(workspace_id=workspace_id, user_id=user_id),
                    exc_info=exc,
                )
    finally:
        broker.unsubscribe(subscriber)
        logger.debug(
            "tasks.realtime.unsubscribed",
            extra=log_context(workspace_id=workspace_id, user_id=user_id),
        )


__all__ = ["router"]
