"""Current-user and administrator account endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from taskboard_api.app.dependencies import CurrentUser, get_users_service

from .schemas import AdminPasswordReset, MessageResponse, UserOut
from .service import UsersService

router = APIRouter(tags=["users"])

UsersServiceDep = Annotated[UsersService, Depends(get_users_service)]
USER_ID_PARAM = Annotated[int, Path(description="User identifier.")]


@router.get("/me", name="me", response_model=UserOut, summary="Return the authenticated user")
async def me(user: CurrentUser) -> UserOut:
    return UserOut.model_validate(user)


@router.post(
    "/admin/users/{user_id}/ban",
    name="banUser",
    response_model=UserOut,
    summary="Ban a user (administrator only)",
)
async def ban_user(user_id: USER_ID_PARAM, actor: CurrentUser, service: UsersServiceDep) -> UserOut:
    return UserOut.model_validate(await service.ban_user(actor=actor, user_id=user_id))


@router.post(
    "/admin/users/{user_id}/unban",
    name="unbanUser",
    response_model=UserOut,
    summary="Lift a ban (administrator only)",
)
async def unban_user(
    user_id: USER_ID_PARAM, actor: CurrentUser, service: UsersServiceDep
) -> UserOut:
    return UserOut.model_validate(await service.unban_user(actor=actor, user_id=user_id))


@router.post(
    "/admin/users/{user_id}/reset-password",
    name="adminResetPassword",
    response_model=MessageResponse,
    summary="Set another user's password (administrator only)",
)
async def admin_reset_password(
    user_id: USER_ID_PARAM,
    payload: AdminPasswordReset,
    actor: CurrentUser,
    service: UsersServiceDep,
) -> MessageResponse:
    await service.admin_reset_password(
        actor=actor, user_id=user_id, new_password=payload.new_password
    )
    return MessageResponse(message="Password reset")


__all__ = ["router"]
