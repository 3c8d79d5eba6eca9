"""Database engine + session factory.

Standard behavior:
- One engine per application (created at startup, stored on ``app.state``)
- One session per request (FastAPI dependency)
- Commit on success, rollback on exception
- SQLite: WAL + busy_timeout + foreign keys enforced on every connection
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taskboard_api.settings import Settings

__all__ = [
    "DatabaseConfig",
    "Database",
    "build_async_url",
    "build_sync_url",
    "get_database",
    "get_db_session",
    "init_db",
    "session_scope",
    "shutdown_db",
]

_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
}
_SYNC_DRIVERS = {
    "sqlite": "sqlite",
    "postgresql": "postgresql",
}


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Minimal DB config.

    Provide a SQLAlchemy URL in `url`; sync and async drivers are derived:

    SQLite:
      sqlite:///./data/db/taskboard.sqlite  ->  sqlite+aiosqlite:///...
    """

    url: str

    echo: bool = False

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30

    sqlite_journal_mode: str = "WAL"
    sqlite_busy_timeout_ms: int = 30_000

    @classmethod
    def from_settings(cls, settings: Settings) -> DatabaseConfig:
        return cls(
            url=settings.database_url,
            echo=bool(settings.database_echo),
            pool_size=int(settings.database_pool_size),
            max_overflow=int(settings.database_max_overflow),
            pool_timeout=int(settings.database_pool_timeout),
            sqlite_busy_timeout_ms=int(settings.database_sqlite_busy_timeout_ms),
        )


# ---- URL helpers ------------------------------------------------------------

def _backend(url: URL) -> str:
    backend = url.get_backend_name()
    if backend not in _ASYNC_DRIVERS:
        raise ValueError("Only SQLite and PostgreSQL are supported.")
    return backend


def _is_sqlite_memory(url: URL) -> bool:
    db = (url.database or "").strip()
    if not db or db == ":memory:":
        return True
    return db.startswith("file:") and (url.query or {}).get("mode") == "memory"


def _ensure_sqlite_parent_dir(url: URL) -> None:
    db = (url.database or "").strip()
    if not db or db == ":memory:" or db.startswith("file:"):
        return
    path = Path(db)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def build_sync_url(cfg: DatabaseConfig) -> str:
    """Return the *sync* SQLAlchemy URL string (for Alembic)."""
    url = make_url(cfg.url)
    backend = _backend(url)
    return url.set(drivername=_SYNC_DRIVERS[backend]).render_as_string(hide_password=False)


def build_async_url(cfg: DatabaseConfig) -> str:
    """Return the *async* SQLAlchemy URL string (for runtime)."""
    url = make_url(cfg.url)
    backend = _backend(url)
    if "+" in url.drivername and backend != "sqlite":
        return url.render_as_string(hide_password=False)
    return url.set(drivername=_ASYNC_DRIVERS[backend]).render_as_string(hide_password=False)


def _build_engine_kwargs(url: URL, cfg: DatabaseConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": cfg.echo, "pool_pre_ping": True}
    if _backend(url) == "sqlite":
        kwargs["connect_args"] = {"timeout": cfg.sqlite_busy_timeout_ms / 1000.0}
        if _is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            pool_size=cfg.pool_size,
            max_overflow=cfg.max_overflow,
            pool_timeout=cfg.pool_timeout,
        )
    return kwargs


# ---- Database object --------------------------------------------------------

class Database:
    """Holds the application-wide engine + sessionmaker.

    Call `init(cfg)` once on startup.
    Call `await dispose()` on shutdown.
    """

    def __init__(self) -> None:
        self._cfg: DatabaseConfig | None = None
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init(...) at startup.")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call init(...) at startup.")
        return self._sessionmaker

    def init(self, cfg: DatabaseConfig) -> None:
        """Create engine + sessionmaker (idempotent for identical config)."""
        if self._cfg == cfg and self._engine is not None:
            return

        self._cfg = cfg
        async_url = build_async_url(cfg)
        url_obj = make_url(async_url)
        backend = _backend(url_obj)

        if backend == "sqlite":
            _ensure_sqlite_parent_dir(url_obj)

        engine = create_async_engine(async_url, **_build_engine_kwargs(url_obj, cfg))

        if backend == "sqlite":
            jm = cfg.sqlite_journal_mode
            busy_ms = int(cfg.sqlite_busy_timeout_ms)
            in_memory = _is_sqlite_memory(url_obj)

            @event.listens_for(engine.sync_engine, "connect")
            def _sqlite_on_connect(dbapi_conn, _):
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("PRAGMA foreign_keys=ON")
                    cur.execute(f"PRAGMA busy_timeout={busy_ms}")
                    if not in_memory:
                        cur.execute(f"PRAGMA journal_mode={jm}")
                finally:
                    cur.close()

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            bind=engine,
            expire_on_commit=False,
            autoflush=False,
        )

    async def dispose(self) -> None:
        """Dispose engine (call on shutdown)."""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        self._cfg = None


def init_db(app: FastAPI, settings: Settings) -> Database:
    database: Database = app.state.database
    database.init(DatabaseConfig.from_settings(settings))
    return database


async def shutdown_db(app: FastAPI) -> None:
    database: Database = app.state.database
    await database.dispose()


async def close_session(session: AsyncSession) -> None:
    await asyncio.shield(session.close())


@asynccontextmanager
async def session_scope(database: Database) -> AsyncIterator[AsyncSession]:
    """Open a standalone session (background workers, websocket handshakes)."""
    session = database.sessionmaker()
    try:
        yield session
    finally:
        await close_session(session)


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one AsyncSession per request."""
    session = get_database(request).sessionmaker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await close_session(session)
