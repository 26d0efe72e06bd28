"""
Core data types for Task Tamer: conversation model, dialogue states,
phrase predicates and turn results.
"""

from tasktamer.core.dialogue_state import (
    AwaitingBreakdownDecisionState,
    AwaitingTaskState,
    ChecklistActiveState,
    DialoguePhase,
    DialogueState,
    EmptyState,
    NormalChatState,
)
from tasktamer.core.models import (
    ChecklistProgress,
    Conversation,
    Message,
    MessageRole,
    Step,
)
from tasktamer.core.phrases import DEFAULT_PHRASES, PhraseSet
from tasktamer.core.turn_result import (
    ChecklistEvent,
    ChecklistEventType,
    ToggleResult,
    TurnResult,
)

__all__ = [
    "AwaitingBreakdownDecisionState",
    "AwaitingTaskState",
    "ChecklistActiveState",
    "DialoguePhase",
    "DialogueState",
    "EmptyState",
    "NormalChatState",
    "ChecklistProgress",
    "Conversation",
    "Message",
    "MessageRole",
    "Step",
    "DEFAULT_PHRASES",
    "PhraseSet",
    "ChecklistEvent",
    "ChecklistEventType",
    "ToggleResult",
    "TurnResult",
]
