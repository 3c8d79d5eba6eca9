"""Assemble the feature routers under one API router."""

from __future__ import annotations

from fastapi import APIRouter

from taskboard_api.features.auth.router import router as auth_router
from taskboard_api.features.notifications.router import router as notifications_router
from taskboard_api.features.projects.router import router as projects_router
from taskboard_api.features.push.router import router as push_router
from taskboard_api.features.tasks.router import router as tasks_router
from taskboard_api.features.users.router import router as users_router
from taskboard_api.features.workspaces.router import router as workspaces_router


def create_api_router() -> APIRouter:
    api_router = APIRouter()
    api_router.include_router(auth_router)
    api_router.include_router(users_router)
    api_router.include_router(workspaces_router)
    api_router.include_router(projects_router)
    api_router.include_router(tasks_router)
    api_router.include_router(notifications_router)
    api_router.include_router(push_router)
    return api_router


__all__ = ["create_api_router"]
