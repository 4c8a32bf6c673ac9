"""
Global exception handlers and custom exception classes.

Every error leaving the API has the same shape: {"error": "<message>"}.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from .config import settings

# Set up logging
logger = logging.getLogger(__name__)

class AppException(Exception):
    """
    Base exception class for application-specific exceptions.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str = None, status_code: int = None):
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)


class ValidationException(AppException):
    """Malformed or missing input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class AuthenticationException(AppException):
    """Bad credentials or an invalid/expired token. Messages stay generic."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication failed"


class AuthorizationException(AppException):
    """Authenticated but not allowed: role, ownership or identity mismatch."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class VerificationFailedException(AppException):
    """A doctor or staff credential check did not pass."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Professional identity verification failed"


class ConflictException(AppException):
    """A uniqueness rule was violated."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Resource already exists"


class NotFoundException(AppException):
    """Account, session, organization or employee absent."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class DependencyException(AppException):
    """A backing service (registry, identity provider, storage) is unreachable."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service temporarily unavailable"


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    if exc.status_code >= 500:
        logger.error(f"Application error on {request.url.path}: {exc.detail}")
    else:
        logger.warning(f"Request rejected on {request.url.path}: {exc.status_code} {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with itemized field errors
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({
            "error": "Validation error",
            "errors": errors
        })
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for framework HTTP exceptions (404 routes, 405 methods, security schemes).
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler. The stack trace stays in the server log.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.expose_error_details else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message}
    )


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
