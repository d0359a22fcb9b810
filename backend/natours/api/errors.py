"""
Maps every exception to the API's error envelope.

Development responses carry the error kind and the stack trace. Production
responses only expose messages of operational errors; anything unexpected
becomes a generic 500.
"""
from typing import Any, Dict, Optional
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from natours.core.config import Settings
from natours.core.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went very wrong!"


def _stack(exc: BaseException):
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        msg = str(error.get("msg", "")).replace("Value error, ", "")
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {msg}" if location else msg)
    return f"Invalid input data. {'. '.join(messages)}"


def _send_error(settings: Settings, err: AppError, origin: Optional[BaseException] = None) -> JSONResponse:
    if not settings.is_production:
        content: Dict[str, Any] = {
            "status": err.status,
            "error": {
                "kind": err.kind.value,
                "status_code": err.status_code,
                "is_operational": err.is_operational,
            },
            "message": err.message,
            "stack": _stack(origin or err),
        }
    else:
        content = {"status": err.status, "message": err.message}
    return JSONResponse(status_code=err.status_code, content=content)


def _send_unexpected(settings: Settings, exc: Exception) -> JSONResponse:
    logger.error(f"💥 Unexpected error: {exc!r}", exc_info=exc)

    if not settings.is_production:
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": {
                    "kind": ErrorKind.INTERNAL.value,
                    "type": type(exc).__name__,
                    "status_code": 500,
                    "is_operational": False,
                },
                "message": str(exc),
                "stack": _stack(exc),
            },
        )
    return JSONResponse(status_code=500, content={"status": "error", "message": GENERIC_MESSAGE})


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _send_error(settings, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _send_error(settings, AppError.validation(_validation_message(exc)), exc)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.info(f"Integrity error: {exc.orig}")
        err = AppError(ErrorKind.CONFLICT, "Duplicate field value. Please use another value!")
        return _send_error(settings, err, exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            err = AppError.not_found(f"Can't find {request.url.path} on this server")
        else:
            kind = ErrorKind.INTERNAL if exc.status_code >= 500 else ErrorKind.VALIDATION
            err = AppError(kind, str(exc.detail), status_code=exc.status_code)
        return _send_error(settings, err, exc)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        return _send_unexpected(settings, exc)
