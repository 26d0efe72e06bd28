"""
Centralized Error Response Builder for Task Tamer.

Provides consistent error codes and messages for the HTTP layer. The
builder returns structured error dicts compatible with the API response
envelope.
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Error Code Constants
# =============================================================================

NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"

_ERROR_MESSAGES: dict[str, str] = {
    NOT_FOUND: "The requested resource was not found.",
    VALIDATION_ERROR: "Invalid input. Please check your request.",
    INTERNAL_ERROR: "An internal error occurred. Please try again.",
}


def get_error_message(code: str) -> str:
    """
    Get the default message for an error code.

    Falls back to a generic message if the error code is unknown.
    """
    return _ERROR_MESSAGES.get(code, "An error occurred.")


def build_error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a structured error dict: {"code": str, "message": str, "details"?: dict}.

    Args:
        code: Error code constant (e.g. NOT_FOUND)
        message: Optional override message
        details: Optional additional error details

    Returns:
        Structured error dict
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message if message is not None else get_error_message(code),
    }
    if details is not None:
        error["details"] = details
    return error


__all__ = [
    "NOT_FOUND",
    "VALIDATION_ERROR",
    "INTERNAL_ERROR",
    "get_error_message",
    "build_error_response",
]
