"""
Error taxonomy shared by the store, the analytics engine and the routers.

Routers never build HTTP errors for these by hand; ``register_exception_handlers``
maps each class to a status code and the ``{"success": false, "message": ...}``
envelope used across the API.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FinanceError(Exception):
    """Base class for all domain errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidRangeError(ValidationError):
    """A custom date range is missing a bound or is malformed."""


class NotFoundError(FinanceError):
    status_code = status.HTTP_404_NOT_FOUND


class AuthorizationError(FinanceError):
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(FinanceError):
    status_code = status.HTTP_409_CONFLICT


class DataAccessError(FinanceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ExternalServiceError(FinanceError):
    status_code = status.HTTP_502_BAD_GATEWAY


async def finance_error_handler(request: Request, exc: FinanceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FinanceError, finance_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
