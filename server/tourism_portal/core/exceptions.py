"""API exceptions and the handlers that render them as ``{message, details}`` bodies."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """
    Base exception for expected API failures.

    Every subclass renders as a JSON body with a ``message`` and, when
    present, a ``details`` entry.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the API error.

        Args:
            status_code: HTTP status code
            message: Human-readable summary of the problem
            details: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.message = message
        self.details = details

        self.body: Dict[str, Any] = {"message": message}
        if details is not None:
            self.body["details"] = details

        super().__init__(status_code=status_code, detail=self.body, headers=headers)


class ValidationError(APIError):
    """Exception for malformed or out-of-schema input."""

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(status_code=400, message=message, details=details)


class AuthenticationError(APIError):
    """Exception for missing, invalid or expired credentials."""

    def __init__(
        self,
        message: str = "Authentication credentials are required",
        status_code: int = 401,
    ):
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        super().__init__(status_code=status_code, message=message, headers=headers)


class AuthorizationError(APIError):
    """Exception for role or ownership mismatches."""

    def __init__(
        self,
        message: str = "Access denied. Insufficient permissions.",
        required_roles: Optional[List[str]] = None,
    ):
        details = {"required_roles": required_roles} if required_roles else None
        super().__init__(status_code=403, message=message, details=details)


class NotFoundError(APIError):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"{resource_type} not found"
        details = {"resource_id": resource_id} if resource_id else None
        super().__init__(status_code=404, message=message, details=details)


class ConflictError(APIError):
    """Exception for duplicate unique keys."""

    def __init__(
        self,
        message: str = "The request conflicts with an existing resource",
        conflicting_resource: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=400, message=message, details=conflicting_resource)


class InternalServerError(APIError):
    """Exception for internal server errors."""

    def __init__(self, message: str = "Server error"):
        super().__init__(status_code=500, message=message)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """
    Exception handler for API errors.

    Args:
        request: FastAPI request object
        exc: API error

    Returns:
        JSONResponse: ``{message, details}`` formatted response
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.body,
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert FastAPI request validation failures into 400 responses."""
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value"),
        })

    return JSONResponse(
        status_code=400,
        content={"message": "Validation error", "details": details},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors, including unmatched routes."""
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"message": "Endpoint not found", "path": request.url.path},
        )

    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler for anything not converted by a service.

    The error text is only exposed in development mode.
    """
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )

    content: Dict[str, Any] = {"message": "Server error"}
    if settings.debug:
        content["error"] = str(exc)

    return JSONResponse(status_code=500, content=content)
