"""Exception handlers producing the response envelope.

    success: {"success": true, "data": ..., "count"?: n, "message"?: ...}
    failure: {"success": false, "message": ..., "error"?: ...}

Request validation failures are reported as 400.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from frontdesk.domain.errors import FrontDeskError, ReservationConflictError
from frontdesk.observability.correlation import get_correlation_id
from frontdesk.observability.logging import get_logger
from frontdesk.observability.redaction import safe_log_context

logger = get_logger(__name__)


def error_body(message: str, error: object | None = None) -> dict:
    body: dict = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body


async def _frontdesk_error(request: Request, exc: FrontDeskError) -> JSONResponse:
    error = None
    if isinstance(exc, ReservationConflictError):
        error = {"conflicting_reservation_id": exc.conflicting_reservation_id}
    logger.info(
        "request rejected",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                path=request.url.path,
                error_type=type(exc).__name__,
                status_code=exc.status_code,
            )
        },
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, error))


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    error = None if isinstance(exc.detail, str) else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, error),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("Validation failed", errors))


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled error",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(),
                path=request.url.path,
                error_type=type(exc).__name__,
            )
        },
    )
    return JSONResponse(status_code=500, content=error_body("Server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FrontDeskError, _frontdesk_error)
    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)
