"""Structured logging middleware with correlation IDs for request tracing.

Provides:
- Request/response correlation IDs (X-Request-ID)
- Request timing
- JSON logging outside dev
- Security-aware logging (sensitive headers and params masked)
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request correlation ID
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

logger = logging.getLogger("jitcard.api")

# Query parameters that should be masked (security)
SENSITIVE_PARAMS = frozenset({
    "token",
    "pan",
    "pin",
    "cvv",
    "password",
})

# Extra attributes copied from log records into JSON output
_EXTRA_FIELDS = (
    "event",
    "method",
    "path",
    "url",
    "query",
    "status_code",
    "duration_ms",
    "client_ip",
    "action",
    "card_token",
    "transaction_token",
    "error",
    "error_type",
    "error_code",
)


@dataclass
class LoggingConfig:
    """Configuration for structured logging middleware."""

    # Paths to exclude from logging entirely
    exclude_paths: List[str] = field(default_factory=lambda: [
        "/health",
        "/docs",
        "/openapi.json",
    ])

    # Slow request threshold (ms) - logs warning if exceeded
    slow_request_threshold_ms: float = 3000.0


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = request_id_var.get() or "-"
        return True


def filter_query_params(query_string: str) -> str:
    """Filter out sensitive query parameters from logging."""
    if not query_string:
        return ""

    params = []
    for param in query_string.split("&"):
        if "=" in param:
            key, _ = param.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                params.append(f"{key}=***")
                continue
        params.append(param)
    return "&".join(params)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for structured logging with correlation IDs.

    - Accepts X-Request-ID for distributed tracing or generates one
    - Logs request start/complete with timing
    - Adds correlation ID and timing to response headers
    """

    def __init__(
        self,
        app,
        exclude_paths: list[str] | None = None,
        config: LoggingConfig | None = None,
    ):
        super().__init__(app)
        self.config = config or LoggingConfig()
        if exclude_paths:
            self.config.exclude_paths = exclude_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.config.exclude_paths:
            return await call_next(request)

        correlation_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:16]}"
        request_id_var.set(correlation_id)
        request.state.request_id = correlation_id

        method = request.method
        path = request.url.path
        query = filter_query_params(request.url.query)

        request_context = {
            "event": "request_start",
            "method": method,
            "path": path,
            "query": query or None,
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.info("Request started", extra={k: v for k, v in request_context.items() if v is not None})

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed",
                extra={
                    "event": "request_error",
                    "method": method,
                    "path": path,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response_context = {
            "event": "request_complete",
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }

        if response.status_code >= 500:
            logger.error("Request completed with server error", extra=response_context)
        elif response.status_code >= 400:
            logger.warning("Request completed with client error", extra=response_context)
        elif duration_ms > self.config.slow_request_threshold_ms:
            logger.warning("Slow request completed", extra=response_context)
        else:
            logger.info("Request completed", extra=response_context)

        response.headers["X-Request-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(json_format: bool = True, level: str = "INFO"):
    """
    Configure structured logging for the application.

    Args:
        json_format: Use JSON format (for production) or human-readable (for dev)
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.addFilter(CorrelationIdFilter())

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s"
            )
        )

    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_correlation_id() -> Optional[str]:
    """Get the current request's correlation ID."""
    return request_id_var.get()
