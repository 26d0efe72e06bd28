"""
Conversation data model for Task Tamer.

A Conversation is an append-only sequence of Messages. A Message may carry
a checklist: an ordered list of Steps whose texts are sanitized, non-empty
and unique under case-insensitive, whitespace-collapsed comparison. The
only field that changes after a message is appended is Step.done.

Everything here serializes to plain dicts for the persistence collaborator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from tasktamer.core.dialogue_state import DialogueState, EmptyState, state_from_dict
from tasktamer.lib.exceptions import SerializationError, StateError


class MessageRole(StrEnum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


def new_message_id() -> str:
    """Generate a message identifier."""
    return uuid.uuid4().hex[:12]


@dataclass
class Step:
    """One checklist item.

    `id` is None only while the step is a candidate inside the extraction
    pipeline; deduplication assigns `step-<n>` ids before a step is ever
    attached to a message.
    """

    text: str
    done: bool = False
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"id": self.id, "text": self.text, "done": self.done}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        """Deserialize from dictionary."""
        return cls(
            id=data.get("id"),
            text=str(data.get("text", "")),
            done=bool(data.get("done", False)),
        )


@dataclass
class ChecklistProgress:
    """Completion summary of one checklist message."""

    completed: int
    total: int

    @property
    def percent(self) -> int:
        """Completion percentage rounded half-up to an integer."""
        if self.total <= 0:
            return 0
        return int(100 * self.completed / self.total + 0.5)

    @property
    def milestone(self) -> int:
        """Percentage rounded down to the nearest multiple of 5."""
        return (self.percent // 5) * 5

    @property
    def stage(self) -> str:
        """Stage label used by motivation prompts and fallback pools."""
        percent = self.percent
        if percent == 100:
            return "completed"
        if percent >= 75:
            return "near-completion"
        if percent >= 50:
            return "making-good-progress"
        if percent > 0:
            return "just-started"
        return "not-started"

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": self.completed,
            "total": self.total,
            "percent": self.percent,
            "stage": self.stage,
        }


@dataclass
class Message:
    """A single chat message.

    Attributes:
        role: Author of the message
        text: Display text, empty when the steps alone represent the message
        steps: Checklist, None when the message carries no steps
        id: Message identifier
    """

    role: MessageRole
    text: str = ""
    steps: list[Step] | None = None
    id: str = field(default_factory=new_message_id)

    @property
    def has_checklist(self) -> bool:
        return bool(self.steps)

    def find_step(self, step_id: str) -> Step | None:
        """Return the step with the given id, or None."""
        for step in self.steps or []:
            if step.id == step_id:
                return step
        return None

    def progress(self) -> ChecklistProgress | None:
        """Checklist progress, or None for a message without steps."""
        if not self.steps:
            return None
        completed = sum(1 for step in self.steps if step.done)
        return ChecklistProgress(completed=completed, total=len(self.steps))

    def history_text(self) -> str:
        """Text sent upstream as conversation history.

        A checklist message has no display text, so its steps are rendered
        as checkbox lines instead.
        """
        if self.text or not self.steps:
            return self.text
        return "\n".join(
            f"- [{'x' if step.done else ' '}] {step.text}" for step in self.steps
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
        }
        if self.steps:
            data["steps"] = [step.to_dict() for step in self.steps]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Deserialize from dictionary."""
        steps_data = data.get("steps")
        return cls(
            id=str(data["id"]),
            role=MessageRole(data["role"]),
            text=str(data.get("text", "")),
            steps=[Step.from_dict(s) for s in steps_data] if steps_data else None,
        )


@dataclass
class Conversation:
    """One chat: title, message history and dialogue control state.

    Attributes:
        title: Display title, replaced by a short task title on breakdown
        messages: Append-only message history
        state: Current dialogue state (tagged variant)
        milestones: Last motivation milestone recorded per checklist message
        model: Per-conversation model override, None for the configured default
        id: Conversation identifier
    """

    title: str
    messages: list[Message] = field(default_factory=list)
    state: DialogueState = field(default_factory=EmptyState)
    milestones: dict[str, int] = field(default_factory=dict)
    model: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def append(self, message: Message) -> Message:
        """Append a message to the history and return it."""
        self.messages.append(message)
        return message

    def find_message(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def history(self, exclude_last: int = 0) -> list[dict[str, str]]:
        """Ordered {role, text} history for upstream requests.

        Args:
            exclude_last: Number of trailing messages to leave out
        """
        end = len(self.messages) - exclude_last
        return [
            {"role": m.role.value, "text": m.history_text()}
            for m in self.messages[:max(end, 0)]
        ]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "state": self.state.to_dict(),
            "milestones": dict(self.milestones),
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        """Deserialize from dictionary.

        Raises:
            SerializationError: If required fields are missing or malformed
        """
        try:
            return cls(
                id=str(data["id"]),
                title=str(data["title"]),
                messages=[Message.from_dict(m) for m in data.get("messages", [])],
                state=state_from_dict(data.get("state") or {"phase": "EMPTY"}),
                milestones={
                    str(k): int(v) for k, v in (data.get("milestones") or {}).items()
                },
                model=data.get("model"),
            )
        except (KeyError, TypeError, ValueError, StateError) as e:
            raise SerializationError(f"Invalid conversation payload: {e}") from e
