"""Exception hierarchy for the JIT card demo.

All errors raised by jitcard inherit from JitCardError, which carries:
- error_code: Machine-readable error code (e.g., "VALIDATION_ERROR")
- http_status: HTTP status code used by the API layer
- message: Human-readable error message
- details: Optional additional context dictionary
- to_dict(): Convert to the API failure envelope

Usage:
    from jitcard.exceptions import UpstreamError

    try:
        await client.send("POST", "/users", body)
    except UpstreamError as e:
        logger.warning("user creation rejected: %s", e.message)
"""
from __future__ import annotations

from typing import Any, Optional


class JitCardError(Exception):
    """Base exception for all jitcard errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Optional additional context
    """

    error_code: str = "JITCARD_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the API failure envelope."""
        return {
            "success": False,
            "error": self.message,
            "details": self.details or None,
        }


# =============================================================================
# Input Errors (4xx)
# =============================================================================

class CommandValidationError(JitCardError):
    """Missing or invalid command field. Raised before any upstream call."""

    error_code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details=details)


class CardNotFoundError(JitCardError):
    """No card in the registry matches the supplied PAN."""

    error_code = "CARD_NOT_FOUND"
    http_status = 404

    def __init__(self, message: str = "Card not found. Please setup JIT funding first.") -> None:
        super().__init__(
            message,
            details={
                "hint": "The PAN must match the card created in the system.",
            },
        )


class InvalidPinError(JitCardError):
    """PIN did not match the expected value for the card."""

    error_code = "INVALID_PIN"
    http_status = 401

    def __init__(self, message: str = "Invalid PIN") -> None:
        super().__init__(message)


# =============================================================================
# Upstream Platform Errors
# =============================================================================

_STATUS_HINTS = {
    401: "Authentication failed: {message}. Please check your Marqeta API credentials.",
    403: "Authorization failed: {message}. You don't have permission to perform this action.",
    404: "Resource not found: {message}. This might be due to invalid API credentials or endpoint.",
    409: "Conflict: {message}. A resource with this token may already exist.",
}


def describe_upstream_payload(payload: Any) -> tuple[str, Optional[dict[str, Any]]]:
    """Extract a message (and structured details) from an upstream error body.

    Known shapes are ``{"error_message": ...}``, ``{"message": ...}`` and a
    plain string.
    """
    if isinstance(payload, str) and payload:
        return payload, None
    if isinstance(payload, dict):
        if payload.get("error_message"):
            return str(payload["error_message"]), payload
        if payload.get("message"):
            return str(payload["message"]), None
    return "Upstream request failed", None


class UpstreamError(JitCardError):
    """Non-2xx response from the card-issuing platform."""

    error_code = "UPSTREAM_ERROR"

    def __init__(self, status: int, payload: Any) -> None:
        self.status = status
        self.payload = payload
        self.http_status = status if 400 <= status < 600 else 502

        base_message, details = describe_upstream_payload(payload)
        self.upstream_message = base_message
        hint = _STATUS_HINTS.get(status)
        message = hint.format(message=base_message) if hint else base_message
        super().__init__(message, details=details)


class UpstreamUnavailableError(JitCardError):
    """The card-issuing platform could not be reached at the transport level."""

    error_code = "UPSTREAM_UNAVAILABLE"
    http_status = 502


class ConnectivityError(JitCardError):
    """Pre-flight connectivity check failed."""

    error_code = "CONNECTIVITY_ERROR"
    http_status = 503


class SetupFailedError(JitCardError):
    """The five-step setup chain aborted."""

    error_code = "SETUP_FAILED"
    http_status = 500
