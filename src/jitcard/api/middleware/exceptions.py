"""Global exception handlers for the jitcard API.

Every failure leaves the API in the same envelope the command interface
uses for success:

{
    "success": false,
    "error": "Human-readable message",
    "details": {...} | null
}
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jitcard.exceptions import JitCardError

logger = logging.getLogger(__name__)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("X-Request-ID", "unknown")


def create_error_response(
    message: str,
    status_code: int,
    request_id: str,
    details: dict | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "details": details or None},
        headers={"X-Request-ID": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""

    @app.exception_handler(JitCardError)
    async def jitcard_error_handler(request: Request, exc: JitCardError) -> JSONResponse:
        level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
        logger.log(
            level,
            "Command failed: %s",
            exc.message,
            extra={"error_code": exc.error_code, "path": request.url.path},
        )
        response = create_error_response(
            exc.message,
            exc.http_status,
            get_request_id(request),
            details=exc.details,
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
                "message": e["msg"],
            }
            for e in exc.errors()
        ]
        return create_error_response(
            "Invalid request body",
            400,
            get_request_id(request),
            details={"errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        response = create_error_response(message, exc.status_code, get_request_id(request))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception on %s",
            request.url.path,
            extra={"error_type": type(exc).__name__},
            exc_info=True,
        )
        return create_error_response("Internal server error", 500, get_request_id(request))
