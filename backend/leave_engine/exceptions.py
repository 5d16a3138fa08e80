import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        super().__init__(self.message)


class ConfigurationMissing(AppError):
    """No leave settings or leave type configured for the company."""

    default_status_code = status.HTTP_404_NOT_FOUND


class NotFound(AppError):
    """Referenced employee, application or request does not exist."""

    default_status_code = status.HTTP_404_NOT_FOUND


class NotEligible(AppError):
    """Employee cannot use this leave type or encashment."""

    default_status_code = status.HTTP_400_BAD_REQUEST


class InsufficientBalance(AppError):
    """Reservation or cash-out exceeds the remaining days."""

    default_status_code = status.HTTP_400_BAD_REQUEST


class DuplicateRequest(AppError):
    """A second pending request would break the one-pending rule."""

    default_status_code = status.HTTP_409_CONFLICT


class InvalidDateRange(AppError):
    """Start/end/return ordering violated, or start in the past."""

    default_status_code = status.HTTP_400_BAD_REQUEST


class CapExceeded(AppError):
    """Requested days exceed a configured maximum."""

    default_status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransition(AppError):
    """Action not legal from the current state."""

    default_status_code = status.HTTP_409_CONFLICT


class Forbidden(AppError):
    default_status_code = status.HTTP_403_FORBIDDEN


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            detail="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
