"""Web Push subscription endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from taskboard_api.app.dependencies import CurrentUser, get_push_service
from taskboard_api.features.users.schemas import MessageResponse

from .schemas import PushSubscriptionIn, PushSubscriptionOut, PushUnsubscribe
from .service import PushService

router = APIRouter(prefix="/push", tags=["push"])

PushServiceDep = Annotated[PushService, Depends(get_push_service)]


@router.post(
    "/subscribe",
    name="subscribePush",
    response_model=PushSubscriptionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Store a browser push subscription for the current user",
)
async def subscribe(
    payload: PushSubscriptionIn, actor: CurrentUser, service: PushServiceDep
) -> PushSubscriptionOut:
    subscription = await service.subscribe(
        actor=actor,
        endpoint=payload.endpoint,
        p256dh=payload.keys.p256dh,
        auth=payload.keys.auth,
    )
    return PushSubscriptionOut(id=subscription.id, endpoint=subscription.endpoint)


@router.post(
    "/unsubscribe",
    name="unsubscribePush",
    response_model=MessageResponse,
    summary="Remove a push subscription by endpoint",
)
async def unsubscribe(
    payload: PushUnsubscribe, actor: CurrentUser, service: PushServiceDep
) -> MessageResponse:
    removed = await service.unsubscribe(actor=actor, endpoint=payload.endpoint)
    return MessageResponse(message="Unsubscribed" if removed else "No subscription found")


__all__ = ["router"]
