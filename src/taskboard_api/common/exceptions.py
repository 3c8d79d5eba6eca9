"""Centralized FastAPI exception handlers with structured logging."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from taskboard_api.common.logging import log_context
from taskboard_api.core.errors import AuthorizationDenied, TaskboardError

_UNHANDLED_LOGGER = logging.getLogger("taskboard_api.errors")
_HTTP_LOGGER = logging.getLogger("taskboard_api.http")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected exceptions.

    Registered as the ``Exception`` handler. Any unhandled error results in a
    JSON 500 response and a structured ERROR log including a stack trace.
    """
    _UNHANDLED_LOGGER.exception(
        "unhandled_exception",
        extra=log_context(
            path=str(request.url.path),
            method=request.method,
            exception_type=type(exc).__name__,
            detail=str(exc),
        ),
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException instances.

    4xx responses are returned without logging; 5xx responses are logged at
    ERROR level with structured metadata.
    """
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "http_exception",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                detail=exc.detail,
            ),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def domain_exception_handler(request: Request, exc: TaskboardError) -> JSONResponse:
    """Render domain errors with their status; denials expose the failed precondition."""

    content: dict[str, object] = {"detail": exc.detail}
    if isinstance(exc, AuthorizationDenied):
        content["reason"] = exc.reason
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "domain_exception",
            extra=log_context(
                path=str(request.url.path),
                method=request.method,
                status_code=exc.status_code,
                exception_type=type(exc).__name__,
            ),
        )
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskboardError, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "domain_exception_handler",
    "http_exception_handler",
    "register_exception_handlers",
    "unhandled_exception_handler",
]
