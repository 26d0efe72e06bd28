"""
Turn results for Task Tamer.

The objects returned by DialogueSession.send_user_input and toggle_step.
They carry the messages appended during the turn, the resulting phase and
any checklist events collaborators should react to.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from tasktamer.core.dialogue_state import DialoguePhase
from tasktamer.core.models import ChecklistProgress, Message


class ChecklistEventType(StrEnum):
    """Events emitted when a checklist changes."""

    # Every step of a checklist message is done; focus timers should stop
    CHECKLIST_COMPLETED = "checklist_completed"

    # A new motivation line is available for a checklist message
    MOTIVATION_UPDATED = "motivation_updated"


@dataclass
class ChecklistEvent:
    """An event for externally owned collaborators (timers, renderers).

    Attributes:
        event_type: What happened
        conversation_id: Owning conversation
        message_id: Checklist message the event refers to
        payload: Event data
    """

    event_type: ChecklistEventType
    conversation_id: str
    message_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type.value,
            "conversation_id": self.conversation_id,
            "message_id": self.message_id,
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class TurnResult:
    """Outcome of one user turn.

    Attributes:
        user_message: The user's message, always appended first
        replies: Assistant messages appended during the turn, in order
        phase: Dialogue phase after the turn
        upstream_failed: True if the upstream request failed and the state
            was left as it was before the request
    """

    user_message: Message
    replies: list[Message] = field(default_factory=list)
    phase: DialoguePhase = DialoguePhase.EMPTY
    upstream_failed: bool = False

    @property
    def reply_texts(self) -> list[str]:
        return [reply.text for reply in self.replies]

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_message": self.user_message.to_dict(),
            "replies": [reply.to_dict() for reply in self.replies],
            "phase": self.phase.value,
            "upstream_failed": self.upstream_failed,
        }


@dataclass
class ToggleResult:
    """Outcome of toggling one checklist step.

    Attributes:
        message_id: Checklist message that changed
        step_id: Step that was flipped
        done: New value of the step's done flag
        progress: Checklist progress after the flip
        motivation: Motivation line for a newly reached milestone, or None
        events: Checklist events raised by this toggle
    """

    message_id: str
    step_id: str
    done: bool
    progress: ChecklistProgress
    motivation: str | None = None
    events: list[ChecklistEvent] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.progress.is_complete

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "step_id": self.step_id,
            "done": self.done,
            "progress": self.progress.to_dict(),
            "motivation": self.motivation,
            "events": [event.to_dict() for event in self.events],
        }
