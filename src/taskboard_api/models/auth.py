"""Refresh-token device records and password reset tokens."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from taskboard_api.db import Base, CreatedAtMixin, IntegerPrimaryKeyMixin, UTCDateTime


class UserDevice(IntegerPrimaryKeyMixin, CreatedAtMixin, Base):
    """One issued refresh token, with the address and agent that requested it."""

    __tablename__ = "user_devices"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    refresh_token: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    is_revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)


class PasswordReset(IntegerPrimaryKeyMixin, CreatedAtMixin, Base):
    """Single-use password reset token."""

    __tablename__ = "password_resets"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


__all__ = ["PasswordReset", "UserDevice"]
