"""Domain error types shared by services, dependencies and routers.

Each error carries the HTTP status it renders as and a message that is safe to
show to the caller. The centralized handlers in
:mod:`taskboard_api.common.exceptions` translate them into JSON responses.
"""

from __future__ import annotations

from fastapi import status


class TaskboardError(Exception):
    """Base class for user-visible domain failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def headers(self) -> dict[str, str] | None:
        return None


class AuthenticationFailure(TaskboardError):
    """Raised when a request carries no valid identity."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"

    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationDenied(TaskboardError):
    """Raised when a valid identity lacks the role an operation requires."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Unauthorized"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Unauthorized: {reason}")


class NotFound(TaskboardError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationFailure(TaskboardError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid input"


class AlreadyExists(ValidationFailure):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already exists"


class RateLimited(TaskboardError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many attempts. Please try again later."

    def __init__(self, detail: str | None = None, *, retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(detail)

    def headers(self) -> dict[str, str] | None:
        if self.retry_after is None:
            return None
        return {"Retry-After": str(self.retry_after)}


class OperationFailed(TaskboardError):
    """Raised when a transactional unit was rolled back; the cause is logged only."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Operation failed"


class UpstreamUnavailable(TaskboardError):
    """Raised by email, push and text-generation clients when the collaborator fails."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Upstream service unavailable"


__all__ = [
    "AlreadyExists",
    "AuthenticationFailure",
    "AuthorizationDenied",
    "NotFound",
    "OperationFailed",
    "RateLimited",
    "TaskboardError",
    "UpstreamUnavailable",
    "ValidationFailure",
]
