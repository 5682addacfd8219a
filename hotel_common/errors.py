"""Typed failures raised by the booking core and their HTTP rendering."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base class for every failure the booking core reports to callers."""

    code = "booking_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Booking request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BookingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Mismatch(BookingError):
    code = "mismatch"
    default_message = "Room does not belong to the specified hotel"


class Unavailable(BookingError):
    code = "unavailable"
    default_message = "Room is not available"


class Conflict(BookingError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Room is already booked for the selected dates"


class AlreadyCancelled(BookingError):
    code = "already_cancelled"
    default_message = "Booking is already cancelled"


class Unauthorized(BookingError):
    code = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to cancel this booking"


class ValidationError(BookingError):
    code = "validation_error"
    default_message = "Check-out date must be after check-in date"


class StorageError(BookingError):
    """The request could not be completed; it may or may not have been applied."""

    code = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Booking storage is unavailable, re-query booking state before retrying"


def register_error_handlers(app: FastAPI, service_name: str) -> None:
    """Render every ``BookingError`` as a stable ``{service, code, detail}`` payload.

    Database errors that escape a route unwrapped are rendered as ``storage_error``.
    """

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        if isinstance(exc, StorageError):
            logger.error("%s %s failed in storage: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"service": service_name, "code": exc.code, "detail": exc.message},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("%s %s failed in the database: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=StorageError.status_code,
            content={"service": service_name, "code": StorageError.code, "detail": StorageError.default_message},
        )
