"""Pydantic schemas for authentication flows."""

from __future__ import annotations

from pydantic import EmailStr, Field

from taskboard_api.common.schema import BaseSchema
from taskboard_api.features.users.schemas import UserOut


class SignupRequest(BaseSchema):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1)


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseSchema):
    refresh_token: str = Field(min_length=1)


class AuthPayload(BaseSchema):
    access_token: str
    refresh_token: str
    user: UserOut


class AccessTokenResponse(BaseSchema):
    access_token: str


class ForgotPasswordRequest(BaseSchema):
    email: EmailStr


class ResetPasswordRequest(BaseSchema):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1)


class UpdatePasswordRequest(BaseSchema):
    new_password: str = Field(min_length=1)


__all__ = [
    "AccessTokenResponse",
    "AuthPayload",
    "ForgotPasswordRequest",
    "LoginRequest",
    "RefreshRequest",
    "ResetPasswordRequest",
    "SignupRequest",
    "UpdatePasswordRequest",
]
