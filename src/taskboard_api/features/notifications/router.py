"""In-app notification endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from taskboard_api.app.dependencies import CurrentUser, get_notifications_service

from .schemas import NotificationOut
from .service import NotificationsService

router = APIRouter(prefix="/notifications", tags=["notifications"])

NotificationsServiceDep = Annotated[NotificationsService, Depends(get_notifications_service)]


@router.get(
    "",
    name="listNotifications",
    response_model=list[NotificationOut],
    summary="List the current user's notifications, newest first",
)
async def list_notifications(
    actor: CurrentUser, service: NotificationsServiceDep
) -> list[NotificationOut]:
    return [NotificationOut.model_validate(n) for n in await service.list_for_user(actor=actor)]


@router.post(
    "/{notification_id}/seen",
    name="markNotificationAsSeen",
    response_model=NotificationOut,
    summary="Mark one of the current user's notifications as seen",
)
async def mark_seen(
    notification_id: Annotated[int, Path(description="Notification identifier.")],
    actor: CurrentUser,
    service: NotificationsServiceDep,
) -> NotificationOut:
    notification = await service.mark_seen(actor=actor, notification_id=notification_id)
    return NotificationOut.model_validate(notification)


__all__ = ["router"]
