"""Middleware for the jitcard API.

- Structured logging with correlation IDs
- Exception handling (success/error envelope)
"""
from .exceptions import create_error_response, register_exception_handlers
from .logging import (
    JSONFormatter,
    LoggingConfig,
    StructuredLoggingMiddleware,
    get_correlation_id,
    request_id_var,
    setup_logging,
)

__all__ = [
    "JSONFormatter",
    "LoggingConfig",
    "StructuredLoggingMiddleware",
    "create_error_response",
    "get_correlation_id",
    "register_exception_handlers",
    "request_id_var",
    "setup_logging",
]
