"""
Custom exceptions and error handlers for consistent error responses.

Every domain failure maps to one exception class with a stable error code
and HTTP status. Handlers render them as {error_code, message, details}.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Raised when input is malformed or missing required fields."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class NotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class InsufficientInventoryError(AppException):
    """Raised when a package cannot cover the requested quantity."""

    def __init__(self, package_id: str, requested: int, available: int = None):
        message = f"Package {package_id} has insufficient quantity available for {requested}"
        if available is not None:
            message = f"Package {package_id} has {available} available, {requested} requested"
        super().__init__(
            message=message,
            error_code="ERR_INVENTORY_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"package_id": package_id, "requested": requested, "available": available}
        )


class InvalidStateError(AppException):
    """Raised when a shipment is not in a state permitting the request."""

    def __init__(self, message: str, current_state: str = None):
        super().__init__(
            message=message,
            error_code="ERR_STATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_state": current_state}
        )


class InvalidTransitionError(AppException):
    """Raised when a segment cannot move from its current state to the requested one."""

    def __init__(self, segment_id: str, current_state: str, requested_state: str):
        super().__init__(
            message=f"Segment {segment_id} cannot move from {current_state} to {requested_state}",
            error_code="ERR_TRANSITION_001",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "segment_id": segment_id,
                "current_state": current_state,
                "requested_state": requested_state
            }
        )


class OutOfSequenceError(AppException):
    """Raised when a segment step is attempted before the step it depends on."""

    def __init__(self, message: str, segment_id: str = None, current_state: str = None):
        super().__init__(
            message=message,
            error_code="ERR_SEQUENCE_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"segment_id": segment_id, "current_state": current_state}
        )


class UnauthorizedTransitionError(AppException):
    """Raised when the actor is not the segment's designated owner."""

    def __init__(self, message: str = "Organization is not the designated owner", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_002",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ConflictError(AppException):
    """Raised when a concurrent request won the race. Safe to refetch and retry."""

    def __init__(self, message: str = "Resource was modified by a concurrent request", details: Dict[str, Any] = None):
        details = dict(details or {})
        details["retryable"] = True
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serializable context (e.g. raised ValueErrors) from pydantic errors."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
