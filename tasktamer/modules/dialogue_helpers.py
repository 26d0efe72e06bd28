"""
Dialogue helper functions.

Fixed assistant replies, title extraction and reply builders used by the
dialogue state machine.
"""

from __future__ import annotations

import re

from tasktamer.core.models import Message, MessageRole

# =============================================================================
# Fixed Replies
# =============================================================================

GREETING_REPLY = "What task do you need to break down?"
TASK_REQUEST_REPLY = "Please tell me the task you want simplified into actionable subtasks."
TASK_CAPTURED_REPLY = (
    "Got it. Type 1 to break into subtasks with checkboxes, "
    "or add more details for a better checklist."
)
MORE_DETAILS_REPLY = (
    "Please add more details about the task, "
    "or type 1 when you're ready to break it into subtasks."
)
DIFFERENT_TASK_REPLY = (
    "This looks like a different task. Please open a new chat for each distinct task."
)
BREAKDOWN_DECISION_REPLY = (
    "Reply 1 to break into subtasks (with checkboxes). "
    "Reply 0 to continue without subtasks."
)
UPSTREAM_FAILURE_TEMPLATE = "Failed to reach AI: {cause}"


def assistant_reply(text: str) -> Message:
    """Build an assistant message with display text only."""
    return Message(role=MessageRole.ASSISTANT, text=text)


def upstream_failure_reply(cause: str) -> Message:
    return assistant_reply(UPSTREAM_FAILURE_TEMPLATE.format(cause=cause))


# =============================================================================
# Title Extraction
# =============================================================================

DEFAULT_TITLE = "Task"
TITLE_MAX_LENGTH = 30
TITLE_MIN_LENGTH = 4

_COURTESY_PREFIX_RE = re.compile(
    r"^\s*(?:i want to|i need to|help me|can you|could you)\b\s*",
    re.IGNORECASE,
)
_WHITESPACE_RE = re.compile(r"\s+")


def extract_title(task_text: str) -> str:
    """Derive a short conversation title from the captured task.

    Strips a leading courtesy phrase, collapses whitespace, truncates to
    30 characters and capitalizes the first character. Results shorter
    than 4 characters fall back to "Task".

    Example:
        >>> extract_title("i need to   clean my garage")
        'Clean my garage'
    """
    cleaned = _COURTESY_PREFIX_RE.sub("", task_text)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    cleaned = cleaned[:TITLE_MAX_LENGTH].rstrip()
    if len(cleaned) < TITLE_MIN_LENGTH:
        return DEFAULT_TITLE
    return cleaned[0].upper() + cleaned[1:]
