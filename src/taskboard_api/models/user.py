"""User accounts."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from taskboard_api.db import Base, IntegerPrimaryKeyMixin, TimestampMixin, enum_values


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    BANNED = "BANNED"


class User(IntegerPrimaryKeyMixin, TimestampMixin, Base):
    """Registered account; email is stored lower-cased."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[UserStatus] = mapped_column(
        SAEnum(
            UserStatus,
            name="user_status",
            native_enum=False,
            length=20,
            values_callable=enum_values,
        ),
        nullable=False,
        default=UserStatus.ACTIVE,
        server_default=UserStatus.ACTIVE.value,
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def is_banned(self) -> bool:
        return self.status is UserStatus.BANNED


__all__ = ["User", "UserStatus"]
