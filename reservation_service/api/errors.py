"""Maps service and store exceptions onto JSON error responses."""
import logging
from datetime import datetime, timezone
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from reservation_service.exceptions import ReservationServiceError
from reservation_service.schemas.library import ErrorResponse

logger = logging.getLogger(__name__)


def error_response(
    request: Request,
    status_code: int,
    message: str,
    validation_errors: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        status=status_code,
        error=HTTPStatus(status_code).phrase,
        message=message,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
        validation_errors=validation_errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


async def handle_service_error(request: Request, exc: ReservationServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Internal error on %s: %s", request.url.path, exc.message, exc_info=exc)
    else:
        logger.warning("Request to %s rejected: %s", request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.message)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.setdefault(field, error["msg"])
    logger.warning("Validation failed: %s", errors)
    return error_response(request, 400, "Validation failed", errors)


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Data integrity violation on %s", request.url.path, exc_info=exc)
    return error_response(request, 409, "Database constraint violation")


async def handle_store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Store unavailable on %s: %s", request.url.path, exc)
    return error_response(request, 503, "The record store is temporarily unavailable, please retry")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    for exc_type in (OperationalError, PoolTimeoutError, TimeoutError):
        app.add_exception_handler(exc_type, handle_store_unavailable)
