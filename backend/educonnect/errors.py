"""Error taxonomy and the central HTTP error translator.

Services and repositories raise the small exception classes defined
here; `register_error_handlers` installs one set of FastAPI exception
handlers that turns them (and storage/token failures) into JSON bodies
of the form `{error, message, details?}`.
"""

import logging
import traceback
from typing import Any, Optional

import jwt
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings

logger = logging.getLogger("app.errors")


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, details: Optional[Any] = None, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if error:
            self.error = error


class ValidationError(AppError):
    status_code = 400
    error = "Validation error"


class AuthError(AppError):
    status_code = 401
    error = "Unauthorized"


class NotFoundError(AppError):
    status_code = 404
    error = "Not found"


class ConflictError(AppError):
    status_code = 409
    error = "Conflict"


def error_body(error: str, message: str, details: Optional[Any] = None) -> dict:
    body = {"error": error, "message": message}
    if details is not None:
        body["details"] = details
    return body


def _field_errors(exc: RequestValidationError) -> list:
    out = []
    for err in exc.errors():
        # drop the leading "query"/"body"/"path" segment
        loc = [str(p) for p in err.get("loc", ())][1:] or [str(p) for p in err.get("loc", ())]
        out.append({"field": ".".join(loc), "message": err.get("msg", "invalid value")})
    return out


def register_error_handlers(app: FastAPI) -> None:
    """Install the exception handlers on `app`."""

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.message, exc.details))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = _field_errors(exc)
        message = "; ".join(f"{d['field']}: {d['message']}" for d in details) or "invalid request"
        return JSONResponse(status_code=400, content=error_body("Validation error", message, details))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        logger.info("integrity error on %s: %s", request.url.path, exc.orig)
        return JSONResponse(
            status_code=409,
            content=error_body("Duplicate entry", "A record with this value already exists"),
        )

    @app.exception_handler(jwt.ExpiredSignatureError)
    async def handle_expired_token(request: Request, exc: jwt.ExpiredSignatureError):
        return JSONResponse(
            status_code=401,
            content=error_body("Token expired", "Your session has expired. Please log in again."),
        )

    @app.exception_handler(jwt.InvalidTokenError)
    async def handle_invalid_token(request: Request, exc: jwt.InvalidTokenError):
        return JSONResponse(status_code=401, content=error_body("Invalid token", "The provided token is invalid."))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        body = error_body("Internal Server Error", "An unexpected error occurred")
        if not settings.is_production:
            body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=500, content=body)
