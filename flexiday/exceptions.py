from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)

_RETRY_AFTER_SECONDS = "5"


class ErrorMessage(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    errors: list[ErrorMessage]


class ValidationErrorResponse(BaseModel):
    """Response schema for rejected request payloads."""

    error: str = "Invalid data"
    details: list[ErrorMessage]


class AppError(Exception):
    """Base application exception.

    ``context`` carries the ids involved so the failure can be traced in the
    server log; it is never sent to the client.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        super().__init__(self.message)


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(AppError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class ServiceUnavailableError(AppError):
    """Retryable infrastructure failure (store timeout, lost connection)."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _error_body(message: str) -> dict[str, Any]:
    return ErrorResponse(errors=[ErrorMessage(message=message)]).model_dump()


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "%s on %s %s: %s context=%s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
        exc.context,
    )
    if isinstance(exc, ValidationError):
        content = ValidationErrorResponse(details=[ErrorMessage(message=exc.message)]).model_dump()
    else:
        content = _error_body(exc.message)
    headers = {"Retry-After": _RETRY_AFTER_SECONDS} if isinstance(exc, ServiceUnavailableError) else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        ErrorMessage(message=f"{'.'.join(str(part) for part in err['loc']) or '(root)'}: {err['msg']}")
        for err in exc.errors()
    ]
    logger.warning("Invalid data on %s %s: %s", request.method, request.url.path, [d.message for d in details])
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ValidationErrorResponse(details=details).model_dump(),
    )


async def _store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Store unavailable on %s %s: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body("Service temporarily unavailable, please retry"),
        headers={"Retry-After": _RETRY_AFTER_SECONDS},
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal Server Error"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TimeoutError, _store_unavailable_handler)
    app.add_exception_handler(sa_exc.TimeoutError, _store_unavailable_handler)
    app.add_exception_handler(sa_exc.OperationalError, _store_unavailable_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
