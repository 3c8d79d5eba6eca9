"""DB package exports."""

from .base import (
    NAMING_CONVENTION,
    Base,
    CreatedAtMixin,
    IntegerPrimaryKeyMixin,
    TimestampMixin,
    metadata,
    utc_now,
)
from .database import (
    Database,
    DatabaseConfig,
    build_async_url,
    build_sync_url,
    get_database,
    get_db_session,
    init_db,
    session_scope,
    shutdown_db,
)
from .types import UTCDateTime, enum_values

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "utc_now",
    "IntegerPrimaryKeyMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    "UTCDateTime",
    "enum_values",
    "Database",
    "DatabaseConfig",
    "build_sync_url",
    "build_async_url",
    "get_database",
    "get_db_session",
    "init_db",
    "session_scope",
    "shutdown_db",
]
