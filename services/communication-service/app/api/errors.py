# services/communication-service/app/api/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pymongo.errors import DuplicateKeyError

from app.api.responses import failure
from app.config import settings
from app.errors import AppError

logger = logging.getLogger("app.api.errors")


def _request_line(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
    if exc.status >= 500 or not exc.expose_message:
        # full detail stays server side
        logger.error(
            "%s failed: %s %s details=%s",
            _request_line(request), exc.code, exc.message, exc.details,
            exc_info=exc if exc.status >= 500 else None,
        )
        details = {"originalError": exc.message} if settings.is_development else {}
    else:
        details = exc.details
    return ORJSONResponse(
        status_code=exc.status,
        content=failure(
            exc.client_message(development=settings.is_development),
            code=exc.code,
            status="error" if exc.status >= 500 else "fail",
            details=details,
        ),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    details = {
        "details": [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
    }
    return ORJSONResponse(status_code=400, content=failure("Validation failed", code="VALIDATION_FAILED", details=details))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> ORJSONResponse:
    key_value = (exc.details or {}).get("keyValue") or {}
    field = next(iter(key_value), None)
    return ORJSONResponse(
        status_code=409,
        content=failure("Duplicate entry", code="CONFLICT", details={"field": field}),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception("Unhandled error on %s", _request_line(request))
    message = str(exc) if settings.is_development and str(exc) else "Internal server error"
    details = {"originalError": str(exc)} if settings.is_development else {}
    return ORJSONResponse(
        status_code=500,
        content=failure(message, code="INTERNAL_ERROR", status="error", details=details),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
