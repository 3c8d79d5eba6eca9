"""Authentication endpoints: signup, login, session refresh and passwords."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from taskboard_api.app.dependencies import (
    CurrentUser,
    RateLimitedRoute,
    get_auth_service,
    get_client_info,
)
from taskboard_api.features.users.schemas import MessageResponse, UserOut

from .schemas import (
    AccessTokenResponse,
    AuthPayload,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
)
from .service import AuthService, ClientInfo, SessionTokens

router = APIRouter(prefix="/auth", tags=["auth"])
# Signup and login are counted per caller before their bodies are parsed.
rate_limited_router = APIRouter(route_class=RateLimitedRoute)

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
ClientDep = Annotated[ClientInfo, Depends(get_client_info)]


def _payload(tokens: SessionTokens) -> AuthPayload:
    return AuthPayload(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=UserOut.model_validate(tokens.user),
    )


@rate_limited_router.post(
    "/signup",
    name="signup",
    response_model=AuthPayload,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account and open a session",
    responses={
        status.HTTP_409_CONFLICT: {"description": "Email already registered."},
        status.HTTP_429_TOO_MANY_REQUESTS: {"description": "Too many signup attempts."},
    },
)
async def signup(payload: SignupRequest, service: AuthServiceDep, client: ClientDep) -> AuthPayload:
    tokens = await service.signup(
        name=payload.name,
        email=str(payload.email),
        password=payload.password,
        client=client,
    )
    return _payload(tokens)


@rate_limited_router.post(
    "/login",
    name="login",
    response_model=AuthPayload,
    summary="Exchange credentials for access and refresh tokens",
    responses={
        status.HTTP_401_UNAUTHORIZED: {"description": "Invalid email or password."},
        status.HTTP_403_FORBIDDEN: {"description": "Account is banned."},
        status.HTTP_429_TOO_MANY_REQUESTS: {"description": "Too many login attempts."},
    },
)
async def login(payload: LoginRequest, service: AuthServiceDep, client: ClientDep) -> AuthPayload:
    tokens = await service.login(email=str(payload.email), password=payload.password, client=client)
    return _payload(tokens)


@router.post(
    "/refresh",
    name="refresh",
    response_model=AccessTokenResponse,
    summary="Issue a new access token from a live refresh token",
)
async def refresh(payload: RefreshRequest, service: AuthServiceDep) -> AccessTokenResponse:
    access_token = await service.refresh(refresh_token=payload.refresh_token)
    return AccessTokenResponse(access_token=access_token)


@router.post(
    "/logout",
    name="logout",
    response_model=MessageResponse,
    summary="Revoke a refresh token",
)
async def logout(payload: RefreshRequest, service: AuthServiceDep) -> MessageResponse:
    await service.logout(refresh_token=payload.refresh_token)
    return MessageResponse(message="Logged out")


@router.post(
    "/forgot-password",
    name="forgotPassword",
    response_model=MessageResponse,
    summary="Email a single-use password reset link",
)
async def forgot_password(
    payload: ForgotPasswordRequest, service: AuthServiceDep
) -> MessageResponse:
    await service.forgot_password(email=str(payload.email))
    return MessageResponse(message="Password reset email sent")


@router.post(
    "/reset-password",
    name="resetPassword",
    response_model=MessageResponse,
    summary="Set a new password using a reset token",
)
async def reset_password(payload: ResetPasswordRequest, service: AuthServiceDep) -> MessageResponse:
    await service.reset_password(token=payload.token, new_password=payload.new_password)
    return MessageResponse(message="Password has been reset")


@router.post(
    "/password",
    name="updatePassword",
    response_model=MessageResponse,
    summary="Change the current user's password",
)
async def update_password(
    payload: UpdatePasswordRequest, user: CurrentUser, service: AuthServiceDep
) -> MessageResponse:
    await service.update_password(user=user, new_password=payload.new_password)
    return MessageResponse(message="Password updated")


router.include_router(rate_limited_router)


__all__ = ["router"]
