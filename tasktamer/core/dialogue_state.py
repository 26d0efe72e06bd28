"""
Dialogue States for Task Tamer.

The conversation phase is a tagged variant: each state is its own frozen
dataclass carrying exactly the data that phase needs. A state that waits
for a breakdown decision always holds the captured task text, so
"awaiting a decision with no captured task" cannot be represented.

    EMPTY -> AWAITING_TASK -> AWAITING_BREAKDOWN_DECISION <-> CHECKLIST_ACTIVE | NORMAL_CHAT
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar, Union

from tasktamer.lib.exceptions import StateError


class DialoguePhase(StrEnum):
    """Conversation phases."""

    EMPTY = "EMPTY"
    AWAITING_TASK = "AWAITING_TASK"
    AWAITING_BREAKDOWN_DECISION = "AWAITING_BREAKDOWN_DECISION"
    CHECKLIST_ACTIVE = "CHECKLIST_ACTIVE"
    NORMAL_CHAT = "NORMAL_CHAT"


@dataclass(frozen=True)
class EmptyState:
    """No messages yet."""

    phase: ClassVar[DialoguePhase] = DialoguePhase.EMPTY

    @property
    def captured_task(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"phase": self.phase.value}


@dataclass(frozen=True)
class AwaitingTaskState:
    """Guidance was given; the next input is the task description."""

    phase: ClassVar[DialoguePhase] = DialoguePhase.AWAITING_TASK

    @property
    def captured_task(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"phase": self.phase.value}


@dataclass(frozen=True)
class _CapturedTaskState:
    """Base for states that hold the captured task text."""

    task_text: str

    @property
    def captured_task(self) -> str | None:
        return self.task_text

    def to_dict(self) -> dict[str, Any]:
        return {"phase": self.phase.value, "task_text": self.task_text}  # type: ignore[attr-defined]


@dataclass(frozen=True)
class AwaitingBreakdownDecisionState(_CapturedTaskState):
    """Task captured; waiting for "1" to request a checklist."""

    phase: ClassVar[DialoguePhase] = DialoguePhase.AWAITING_BREAKDOWN_DECISION


@dataclass(frozen=True)
class ChecklistActiveState(_CapturedTaskState):
    """A checklist was produced; further input refines it."""

    phase: ClassVar[DialoguePhase] = DialoguePhase.CHECKLIST_ACTIVE


@dataclass(frozen=True)
class NormalChatState(_CapturedTaskState):
    """Breakdown produced no steps; input is forwarded as plain chat."""

    phase: ClassVar[DialoguePhase] = DialoguePhase.NORMAL_CHAT


DialogueState = Union[
    EmptyState,
    AwaitingTaskState,
    AwaitingBreakdownDecisionState,
    ChecklistActiveState,
    NormalChatState,
]

_CAPTURED_STATES: dict[DialoguePhase, type[_CapturedTaskState]] = {
    DialoguePhase.AWAITING_BREAKDOWN_DECISION: AwaitingBreakdownDecisionState,
    DialoguePhase.CHECKLIST_ACTIVE: ChecklistActiveState,
    DialoguePhase.NORMAL_CHAT: NormalChatState,
}


def state_from_dict(data: dict[str, Any]) -> DialogueState:
    """Rebuild a dialogue state from its serialized form.

    Raises:
        StateError: Unknown phase, or a task-holding phase without task text
    """
    try:
        phase = DialoguePhase(data.get("phase"))
    except ValueError as e:
        raise StateError(f"Unknown dialogue phase: {data.get('phase')!r}") from e

    if phase == DialoguePhase.EMPTY:
        return EmptyState()
    if phase == DialoguePhase.AWAITING_TASK:
        return AwaitingTaskState()

    task_text = data.get("task_text")
    if not isinstance(task_text, str):
        raise StateError(f"Phase {phase.value} requires task_text")
    return _CAPTURED_STATES[phase](task_text=task_text)
