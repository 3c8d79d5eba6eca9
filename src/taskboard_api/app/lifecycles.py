"""FastAPI lifespan helpers for the task board application."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan
from sqlalchemy.engine import make_url

from taskboard_api.common.logging import flush_audit_logger, log_context
from taskboard_api.db import Database, DatabaseConfig, build_async_url, init_db, shutdown_db
from taskboard_api.features.audit import AuditRecorder
from taskboard_api.features.notifications.handlers import NotificationHandlers
from taskboard_api.infra.events import EventDispatcher
from taskboard_api.settings import Settings

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI, settings: Settings) -> None:
    """Subscribe the audit sink and notification handlers to ``app.state.events``."""

    database: Database = app.state.database
    events: EventDispatcher = app.state.events
    events.clear()

    audit = AuditRecorder(session_factory=database.sessionmaker)
    audit.register(events)
    app.state.audit = audit

    NotificationHandlers(
        session_factory=database.sessionmaker,
        email_sender=app.state.email_sender,
        push_sender=app.state.push_sender,
        broker=app.state.broker,
        frontend_url=settings.frontend_url,
    ).register(events)


async def _bounded(step: str, awaitable: Awaitable[object], timeout: float) -> None:
    try:
        await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError:
        logger.warning("shutdown.step.timeout", extra=log_context(step=step, timeout=timeout))
    except Exception:
        logger.exception("shutdown.step.failed", extra=log_context(step=step))


def create_application_lifespan(*, settings: Settings) -> Lifespan[FastAPI]:
    """Return the FastAPI lifespan handler used by the app factory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        safe_url = make_url(build_async_url(DatabaseConfig.from_settings(settings))).render_as_string(
            hide_password=True
        )
        logger.info(
            "taskboard.startup",
            extra=log_context(version=settings.app_version, database_url=safe_url),
        )
        if settings.jwt_secret_generated:
            logger.warning("auth.jwt_secret.generated")

        init_db(app, settings)
        register_event_handlers(app, settings)
        events: EventDispatcher = app.state.events
        events.start()

        try:
            yield
        finally:
            timeout = settings.shutdown_timeout.total_seconds()
            logger.info("taskboard.shutdown.start", extra=log_context(timeout=timeout))
            await _bounded("events", events.stop(), timeout)
            await _bounded("database", shutdown_db(app), timeout)
            await _bounded("audit", asyncio.to_thread(flush_audit_logger), timeout)
            logger.info("taskboard.shutdown.complete")

    return lifespan


__all__ = ["create_application_lifespan", "register_event_handlers"]
