"""
Custom exception hierarchy for Task Tamer.

All exceptions inherit from TaskTamerException, enabling catch-all for
Task Tamer errors while keeping the ability to catch specific error types.
"""

from __future__ import annotations


class TaskTamerException(Exception):
    """Base exception for all Task Tamer errors."""


class ConfigurationError(TaskTamerException):
    """Missing environment variables or invalid config values."""


class UpstreamError(TaskTamerException):
    """The completion endpoint failed (transport, non-success status, malformed body).

    Attributes:
        cause: Human-readable cause string shown to the user
        status_code: HTTP status when the endpoint answered with a non-success code
    """

    def __init__(self, cause: str, status_code: int | None = None) -> None:
        self.cause = cause
        self.status_code = status_code
        super().__init__(cause)


class MotivationValidationError(TaskTamerException):
    """A generated motivation line failed length or content checks."""


class StateError(TaskTamerException):
    """Invalid dialogue state or state payload."""


class ConversationNotFoundError(TaskTamerException):
    """No conversation with the requested id exists in the workspace."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class SerializationError(TaskTamerException):
    """Conversation export/load payload could not be encoded or decoded."""
