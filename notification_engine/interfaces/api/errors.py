"""Translate domain errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notification_engine.domain.exceptions import (
    InvalidStateError,
    MalformedSnapshotError,
    NotFoundError,
    NotificationError,
)
from notification_engine.interfaces.api.schemas import ErrorResponse
from notification_engine.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[NotificationError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (MalformedSnapshotError, 422),
)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, timestamp=now_in_app_timezone())
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def status_for(exc: NotificationError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def notification_error_handler(request: Request, exc: NotificationError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Unhandled notification error on %s: %s", request.url.path, exc.message)
    else:
        logger.info("Request to %s failed: %s", request.url.path, exc.message)
    return _error_response(status_code, exc.code, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "; ".join(messages) or "Invalid request"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotificationError, notification_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)


__all__ = ["register_exception_handlers", "status_for"]
