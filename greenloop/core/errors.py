"""
Custom exception hierarchy for GreenLoop.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

All error responses share one envelope:
    {"error": {"code": ..., "message": ..., "details": {...}}}
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class GreenLoopException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(GreenLoopException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class UnauthenticatedError(GreenLoopException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Not authenticated."):
        super().__init__(message=message)


class ForbiddenError(GreenLoopException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Admin access required.", user_id: Optional[int] = None):
        super().__init__(
            message=message,
            details={"user_id": user_id} if user_id is not None else {},
        )


class NotFoundError(GreenLoopException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} {resource_id} not found.",
            details={"resource": resource, "id": resource_id},
        )


class DuplicateActionError(GreenLoopException):
    http_status = status.HTTP_409_CONFLICT
    code = "DUPLICATE_ACTION"

    def __init__(self, action_id: int, window_hours: int):
        super().__init__(
            message=f"You've already logged this action in the last {window_hours} hours.",
            details={"action_id": action_id, "window_hours": window_hours},
        )


class AlreadyClaimedError(GreenLoopException):
    http_status = status.HTTP_409_CONFLICT
    code = "ALREADY_CLAIMED"

    def __init__(self, level_reward_id: int):
        super().__init__(
            message="Reward already claimed.",
            details={"level_reward_id": level_reward_id},
        )


class AlreadyProcessedError(GreenLoopException):
    http_status = status.HTTP_409_CONFLICT
    code = "ALREADY_PROCESSED"

    def __init__(self, resource: str, resource_id: int, current_status: str):
        super().__init__(
            message=f"{resource} {resource_id} has already been processed ({current_status}).",
            details={"resource": resource, "id": resource_id, "status": current_status},
        )


class InvalidStateError(GreenLoopException):
    http_status = status.HTTP_409_CONFLICT
    code = "INVALID_STATE"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details)


class LevelNotReachedError(GreenLoopException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "LEVEL_NOT_REACHED"

    def __init__(self, required_level: int, current_level: int):
        super().__init__(
            message="You haven't reached this level yet.",
            details={"required_level": required_level, "current_level": current_level},
        )


class RateLimitError(GreenLoopException):
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, retry_after: int):
        super().__init__(
            message=f"Too many requests. Try again in {retry_after} seconds.",
            details={"retry_after": retry_after},
        )


class ConsistencyError(GreenLoopException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "LEDGER_INCONSISTENT"

    def __init__(self, user_id: int, cached_points: Optional[int], ledger_points: Optional[int]):
        super().__init__(
            message=f"Point ledger for user {user_id} does not match the cached total.",
            details={
                "user_id": user_id,
                "cached_points": cached_points,
                "ledger_points": ledger_points,
            },
        )


class PersistenceError(GreenLoopException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_ERROR"

    def __init__(self, operation: str):
        # Internals stay in the server log; the caller only learns what failed.
        super().__init__(
            message=f"Failed to {operation}.",
            details={"operation": operation},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def greenloop_exception_handler(request: Request, exc: GreenLoopException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "%s %s failed: %s %s", request.method, request.url.path, exc.code, exc.details
        )
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.details["retry_after"])}
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.to_dict()},
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed.",
                "details": {"errors": field_errors},
            }
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
            }
        },
    )
