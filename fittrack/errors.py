"""Error taxonomy shared by services and the HTTP layer.

Services raise the subclasses of ``AppError``; ``register_error_handlers``
turns them into ``{"error": kind, "message": ..., **extra}`` bodies. Anything
that is not an ``AppError`` is logged through ``log_error`` and answered with
a generic 500.
"""
from __future__ import annotations
from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import config

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("password", "token", "secret", "api_key", "apikey", "session")


class AppError(Exception):
    status_code = 500
    kind = "internal"

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.extra}


class NotFound(AppError):
    status_code = 404
    kind = "not_found"

    def __init__(self, what: str = "resource", **extra: Any) -> None:
        super().__init__(f"{what} not found", **extra)


class Forbidden(AppError):
    status_code = 403
    kind = "forbidden"


class Conflict(AppError):
    status_code = 409
    kind = "conflict"


class ValidationFailed(AppError):
    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, **extra: Any) -> None:
        if field is not None:
            extra.setdefault("details", [{"field": field, "message": message}])
        super().__init__(message, **extra)


class Unauthorized(AppError):
    status_code = 401
    kind = "unauthorized"


class ServiceUnavailable(AppError):
    status_code = 503
    kind = "unavailable"


def sanitize_context(context: Dict[str, Any]) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    for key, value in context.items():
        if any(s in key.lower() for s in SENSITIVE_KEYS):
            clean[key] = "[REDACTED]"
        else:
            clean[key] = value
    return clean


def log_error(message: str, error: Optional[BaseException] = None, **context: Any) -> None:
    """Log an unexpected failure with its (redacted) context.

    Production logs carry only the exception text; development logs add the
    traceback.
    """
    ctx = sanitize_context(context)
    if config.IS_PRODUCTION:
        logger.error("%s: %s %s", message, error if error else "unknown error", ctx)
    else:
        logger.error("%s %s", message, ctx, exc_info=error)


def _field_path(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        details = [
            {"field": _field_path(err.get("loc", ())), "message": err.get("msg", "invalid value")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={
                "error": ValidationFailed.kind,
                "message": "Invalid request data",
                "details": details,
            },
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log_error(
            "Unhandled error",
            exc,
            method=request.method,
            path=request.url.path,
            user_id=getattr(request.state, "user_id", None),
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal", "message": "Internal server error"},
        )
