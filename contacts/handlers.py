"""
Exception handlers rendering every failure as ``{success: false, ...}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contacts.errors import ContactsError, InternalError, ValidationError
from contacts.schemas import ErrorEnvelope

logger = logging.getLogger(__name__)


def _expose_details(request: Request) -> bool:
    return request.app.state.settings.expose_error_details


def _respond(status_code: int, body: ErrorEnvelope) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ContactsError)
    async def contacts_error_handler(request: Request, exc: ContactsError):
        body = ErrorEnvelope(
            message=exc.message,
            errors=exc.errors if isinstance(exc, ValidationError) else None,
        )
        if isinstance(exc, InternalError):
            logger.error(
                "%s %s failed: %s",
                request.method,
                request.url.path,
                exc.details or exc.message,
                exc_info=exc,
            )
            if _expose_details(request) and exc.details:
                body.error = exc.details
        return _respond(exc.status_code, body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(
                    str(part) for part in err["loc"] if part not in ("body", "path", "query")
                )
                or "body",
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return _respond(400, ErrorEnvelope(message="Validation failed", errors=errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return _respond(exc.status_code, ErrorEnvelope(message=message))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        body = ErrorEnvelope(message="Something went wrong!")
        if _expose_details(request):
            body.error = {"message": str(exc), "type": type(exc).__name__}
        return _respond(500, body)
