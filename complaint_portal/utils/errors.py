from fastapi import FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
import traceback
from .logging import get_logger
from .responses import ResponseBuilder

logger = get_logger()


class AppError(Exception):
    """Base class for errors raised by services; carries a stable error code."""

    default_code = "APP_ERROR"
    default_message = "An error occurred"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = None, error_code: str = None):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        super().__init__(self.message)


class DatabaseError(AppError):
    """Persistence failures. The message is logged; clients get a generic one."""

    default_code = "DB_ERROR"
    default_message = "A database error occurred"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class BusinessLogicError(AppError):
    default_code = "BLOC_ERROR"


class ValidationFailedError(AppError):
    """A required field is missing or a value is malformed."""

    default_code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class AuthenticationError(AppError):
    default_code = "AUTH_ERROR"
    default_message = "Authentication failed"
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AppError):
    default_code = "AUTHZ_ERROR"
    default_message = "Access denied"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    default_code = "NOT_FOUND"
    default_message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    default_code = "CONFLICT"
    default_message = "Resource already exists"
    status_code = status.HTTP_409_CONFLICT


class IllegalTransitionError(ConflictError):
    """Raised when a complaint status change is not in the transition table."""

    default_code = "ILLEGAL_STATUS_TRANSITION"

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move complaint from {current.value} to {requested.value}"
        )


class StorageError(AppError):
    """Media upload to the storage provider failed."""

    default_code = "STORAGE_ERROR"
    default_message = "File upload failed"
    status_code = status.HTTP_502_BAD_GATEWAY


def _format_validation_errors(errors) -> list:
    formatted_errors = []
    for error in errors:
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        formatted_errors.append(
            {
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
            }
        )
    return formatted_errors


def setup_error_handlers(app: FastAPI):
    """Setup custom error handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
            meta={"http_status": exc.status_code},
        )

    """
    RequestValidationError is a sub-class of Pydantic's ValidationError.
    """

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.error(f"Request Validation Error: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=_format_validation_errors(exc.errors()),
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_exception_handler(
        request: Request, exc: ValidationError
    ):
        logger.error(f"Pydantic Validation Error: {exc.errors()}")

        return ResponseBuilder.error(
            request=request,
            message="Data validation failed",
            error_code="INTERNAL_VALIDATION_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(DatabaseError)
    async def database_exception_handler(request: Request, exc: DatabaseError):
        logger.error(f"Database Error [{exc.error_code}]: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
            meta={"error_type": "DATABASE_ERROR"},
        )

    @app.exception_handler(AppError)
    async def app_exception_handler(request: Request, exc: AppError):
        logger.error(f"{type(exc).__name__} [{exc.error_code}]: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy Error: {str(exc)}")

        # Don't expose internal database errors to users
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            meta={"error_type": "SQLALCHEMY_ERROR"},
        )

    # Sync so the rate limit middleware can call it directly
    @app.exception_handler(RateLimitExceeded)
    def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
        logger.warning(f"Rate limit exceeded: {exc.detail}")

        return ResponseBuilder.error(
            request=request,
            message="Too many requests",
            error_code="RATE_LIMITED",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.error(f"Value Error: {str(exc)}")

        return ResponseBuilder.error(
            request=request,
            message=str(exc),
            error_code="VALUE_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other unhandled exceptions"""
        logger.error(f"Unhandled Exception: {str(exc)}")
        logger.error(f"Traceback: {traceback.format_exc()}")

        return ResponseBuilder.error(
            request=request,
            message="An internal server error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
