"""Database column types shared across Taskboard models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy.types import DateTime, TypeDecorator

__all__ = ["UTCDateTime", "enum_values"]


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that normalizes values to UTC.

    SQLite stores naive values; they are re-tagged as UTC when loaded.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any):
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=UTC)
            return value.astimezone(UTC)
        return value

    def process_result_value(self, value: Any, dialect: Any):
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=UTC)
            return value.astimezone(UTC)
        return value


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values (not member names) in string-backed columns."""
    return [member.value for member in enum_cls]
