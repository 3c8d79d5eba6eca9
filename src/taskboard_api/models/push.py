"""Browser push subscriptions."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from taskboard_api.db import Base, CreatedAtMixin, IntegerPrimaryKeyMixin


class PushSubscription(IntegerPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "user_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="user_subscriptions_user_endpoint_key"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    endpoint: Mapped[str] = mapped_column(String(2048), nullable=False)
    p256dh: Mapped[str] = mapped_column(String(255), nullable=False)
    auth: Mapped[str] = mapped_column(String(255), nullable=False)

    def as_subscription(self) -> dict[str, object]:
        """Return the Web Push subscription document the gateway expects."""
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}


__all__ = ["PushSubscription"]
