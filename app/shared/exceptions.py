"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ForbiddenException(AppException):
    """Raised when actor has no rights for operation."""

    status_code = 403
    code = "forbidden"


class ConflictException(AppException):
    """Raised when a request collides with existing state."""

    status_code = 409
    code = "conflict"


class InvalidInputException(AppException):
    """Raised for bad monetary or percentage values. Retrying with the same input fails again."""

    status_code = 422
    code = "invalid_input"


class InvalidSnapshotException(AppException):
    """Raised when a persisted policy snapshot fails validation."""

    status_code = 500
    code = "invalid_snapshot"


class InvalidTransitionException(AppException):
    """Raised when a booking cannot move from its current state to the requested one."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, message: str, *, current: str | None = None, requested: str | None = None) -> None:
        self.current = current
        self.requested = requested
        super().__init__(message)


class DisputeAlreadyPendingException(InvalidTransitionException):
    """Raised when a dispute is opened twice."""

    code = "dispute_already_pending"


class DisputeAlreadyResolvedException(InvalidTransitionException):
    """Raised when a resolved dispute is reopened."""

    code = "dispute_already_resolved"


class DependencyFailureException(AppException):
    """Raised when the payment gateway or another out-of-process collaborator fails."""

    status_code = 502
    code = "dependency_failure"


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
    )


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "internal_error", "message": "Internal server error"}},
    )


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
