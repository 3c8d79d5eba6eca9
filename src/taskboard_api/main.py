"""Taskboard FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from .app.lifecycles import create_application_lifespan
from .app.routers import create_api_router
from .common.exceptions import register_exception_handlers
from .common.logging import setup_logging
from .common.middleware import register_middleware
from .core.rate_limit import FixedWindowRateLimiter
from .core.security import TokenIssuer
from .db import Database
from .features.tasks.realtime import TaskEventBroker
from .infra.email import EmailSender, build_email_sender
from .infra.events import EventDispatcher
from .infra.push import PushSender, build_push_sender
from .infra.text_generation import GeminiTextGenerator, TextGenerator
from .settings import Settings, get_settings

API_PREFIX = "/api"
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    email_sender: EmailSender | None = None,
    push_sender: PushSender | None = None,
    text_generator: TextGenerator | None = None,
) -> FastAPI:
    """Create and configure the Taskboard FastAPI application.

    Collaborators default to the configured SMTP relay, push gateway and
    Gemini client; tests pass recording doubles instead.
    """
    # Settings + logging first so everything else uses the configured root logger.
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=settings.docs_url if settings.api_docs_enabled else None,
        redoc_url=settings.redoc_url if settings.api_docs_enabled else None,
        openapi_url=settings.openapi_url if settings.api_docs_enabled else None,
        debug=settings.debug,
        lifespan=create_application_lifespan(settings=settings),
    )

    app.state.settings = settings
    app.state.database = Database()
    app.state.events = EventDispatcher()
    app.state.broker = TaskEventBroker()
    app.state.tokens = TokenIssuer.from_settings(settings)
    app.state.rate_limiters = {
        "signup": FixedWindowRateLimiter(
            limit=settings.signup_rate_limit,
            window_seconds=settings.signup_rate_window.total_seconds(),
        ),
        "login": FixedWindowRateLimiter(
            limit=settings.login_rate_limit,
            window_seconds=settings.login_rate_window.total_seconds(),
        ),
    }
    app.state.email_sender = email_sender or build_email_sender(settings)
    app.state.push_sender = push_sender or build_push_sender(settings)
    app.state.text_generator = text_generator or GeminiTextGenerator.from_settings(settings)

    register_exception_handlers(app)
    register_middleware(app, settings=settings)
    app.include_router(create_api_router(), prefix=API_PREFIX)
    return app


__all__ = ["API_PREFIX", "create_app"]
