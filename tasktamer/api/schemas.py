"""
Pydantic Schemas for the Task Tamer REST API.

Request models plus the response envelope shared by every endpoint:

    {"success": true, "data": ...}
    {"success": false, "error": {"code": ..., "message": ...}}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from tasktamer.lib.errors import build_error_response

# =============================================================================
# Request Schemas
# =============================================================================


class SendMessageRequest(BaseModel):
    """Validated input for one user turn."""

    text: str = Field(..., min_length=1, max_length=4000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Reject input that is only whitespace."""
        if not v.strip():
            raise ValueError("text must not be blank")
        return v


class CreateConversationRequest(BaseModel):
    """Optional input for a new conversation."""

    model: str | None = Field(default=None, min_length=1, max_length=100)


# =============================================================================
# Response Envelope
# =============================================================================


def success_response(data: Any) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": data}


def error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Wrap a structured error in the failure envelope."""
    return {"success": False, "error": build_error_response(code, message, details)}


__all__ = [
    "SendMessageRequest",
    "CreateConversationRequest",
    "success_response",
    "error_response",
]
