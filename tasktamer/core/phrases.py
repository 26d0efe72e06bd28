"""
Phrase predicates used by the dialogue state machine.

Greeting detection, breakdown-offer detection and "different task"
detection are plain phrase matching. They live in one replaceable
PhraseSet so their accuracy can be tuned without touching the state
machine; pass a custom PhraseSet to DialogueSession to override them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

GREETING_WORDS: tuple[str, ...] = ("hi", "hello", "hey", "yo", "hiya", "greetings")

BREAKDOWN_OFFER_PHRASES: tuple[str, ...] = (
    "should i break this down",
    "should we break this down",
    "want me to break this down",
    "would you like me to break this down",
    "break this into smaller tasks",
    "break this into subtasks",
)

_DIFFERENT_TASK_RE = re.compile(
    r"\b(?:new|another|different)\s+task\b|\bswitch\s+(?:the\s+)?task\b",
    re.IGNORECASE,
)

_BREAKDOWN_DECISION_RE = re.compile(r"^\s*1\s*$")


def _greeting_pattern(words: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(w) for w in words)
    return re.compile(rf"^(?:{alternatives})\b", re.IGNORECASE)


@dataclass(frozen=True)
class PhraseSet:
    """Replaceable set of phrase predicates.

    Attributes:
        greeting_words: Words that count as a greeting when leading the input
        breakdown_offers: Lower-case phrases that mark an assistant reply as
            offering a checklist breakdown
        different_task_pattern: Pattern marking input as a request to switch task
    """

    greeting_words: tuple[str, ...] = GREETING_WORDS
    breakdown_offers: tuple[str, ...] = BREAKDOWN_OFFER_PHRASES
    different_task_pattern: re.Pattern[str] = _DIFFERENT_TASK_RE
    _greeting_re: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_greeting_re", _greeting_pattern(self.greeting_words))

    def is_greeting(self, text: str) -> bool:
        """True if the input starts with a greeting word."""
        return bool(self._greeting_re.match(text.strip()))

    def is_breakdown_decision(self, text: str) -> bool:
        """True if the input is exactly "1", surrounding whitespace allowed."""
        return bool(_BREAKDOWN_DECISION_RE.match(text))

    def offers_breakdown(self, reply_text: str) -> bool:
        """True if an assistant reply offers to break the task down."""
        lowered = reply_text.lower()
        return any(phrase in lowered for phrase in self.breakdown_offers)

    def is_different_task(self, text: str, captured_task: str) -> bool:
        """True if the input looks like a different task than the captured one.

        Explicit switch phrases always count. Otherwise the input must
        mention the captured task text (case-insensitive) to be treated as
        a refinement of the same task.
        """
        if self.different_task_pattern.search(text):
            return True
        return captured_task.lower() not in text.lower()


DEFAULT_PHRASES = PhraseSet()
