"""
Milestone Motivation Cache for Task Tamer.

Short motivational lines are shown under a checklist as it progresses.
Generating one costs an upstream request, so requests are gated:

- Progress is bucketed to the nearest lower multiple of 5 (the milestone)
- A line is requested only when a checklist reaches a milestone strictly
  above the last one recorded for that message, and the milestone is >= 5
- Lines are cached by (task title, milestone, completed count); a cache hit
  never reaches upstream
- A failed request or a line failing validation is replaced by a
  deterministic pick from a static pool, and the pick is cached too

At 100% a "victory" prompt is used; below that the prompt is tailored to
the stage (just-started, making-good-progress, near-completion).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from tasktamer.core.models import ChecklistProgress
from tasktamer.lib.exceptions import MotivationValidationError
from tasktamer.modules.prompts import build_motivation_prompt
from tasktamer.modules.response_normalizer import resolve_text
from tasktamer.services.llm_client import CompletionClient
from tasktamer.services.state_store import BoundedStateStore

logger = structlog.get_logger(__name__)

MIN_MOTIVATION_LENGTH = 8
MAX_MOTIVATION_LENGTH = 50
MILESTONE_STEP = 5

# Stage -> static pool, indexed by completed count modulo pool size
FALLBACK_POOLS: dict[str, tuple[str, ...]] = {
    "completed": (
        "👑 Dominance achieved.",
        "🏆 Flawless finish. Champion.",
        "🚀 Goal obliterated.",
        "🎯 Masterclass delivered.",
    ),
    "near-completion": (
        "Final stretch! 🏁",
        "Almost flawless! 💎",
        "Endgame mode! ⚡",
        "Victory imminent! 🌟",
    ),
    "making-good-progress": (
        "In the zone! 🎯",
        "Riding waves! 🌊",
        "Electric progress! ⚡",
        "Firing on all cylinders! 🔥",
    ),
    "just-started": (
        "Launch sequence! 🚀",
        "First sparks! ⚡",
        "Ignition complete! 🔥",
        "Systems go! 💫",
    ),
}

_WRAPPING_QUOTES_RE = re.compile(r"^[\"'`]+|[\"'`]+$")
_GENERIC_OPENER_RE = re.compile(
    r"^(?:great|awesome|keep|you|good|amazing|excellent|wonderful|"
    r"fantastic|outstanding|incredible|brilliant)\b[\s,!.:;-]*",
    re.IGNORECASE,
)

MotivationKey = tuple[str, int, int]


def clean_motivation(raw: str) -> str:
    """Strip quotes and a generic opener, then validate the length.

    Raises:
        MotivationValidationError: Empty result or length outside [8, 50]
    """
    text = _WRAPPING_QUOTES_RE.sub("", raw.strip())
    text = _GENERIC_OPENER_RE.sub("", text).strip()
    text = _WRAPPING_QUOTES_RE.sub("", text).strip()
    if not MIN_MOTIVATION_LENGTH <= len(text) <= MAX_MOTIVATION_LENGTH:
        raise MotivationValidationError(
            f"Motivation length {len(text)} outside "
            f"[{MIN_MOTIVATION_LENGTH}, {MAX_MOTIVATION_LENGTH}]"
        )
    return text


def fallback_motivation(stage: str, completed: int) -> str:
    """Deterministic pick from the stage's static pool."""
    pool = FALLBACK_POOLS.get(stage, FALLBACK_POOLS["just-started"])
    return pool[completed % len(pool)]


class MotivationGenerator:
    """Requests one motivation line from the upstream model.

    Args:
        client: Upstream completion collaborator
        model: Model identifier, None for the client's default
    """

    REQUEST_OPTIONS = {"max_tokens": 60, "temperature": 1.0}

    def __init__(self, client: CompletionClient, model: str | None = None) -> None:
        self._client = client
        self._model = model

    async def generate(self, task: str, progress: ChecklistProgress) -> str:
        """Generate and validate one line.

        Raises:
            UpstreamError: The request failed
            MotivationValidationError: The reply had no text or failed validation
        """
        prompt = build_motivation_prompt(
            task=task,
            completed=progress.completed,
            total=progress.total,
            percent=progress.percent,
            stage=progress.stage,
        )
        payload = await self._client.complete(
            prompt, history=[], model=self._model, **self.REQUEST_OPTIONS,
        )
        text = resolve_text(payload)
        if not text:
            raise MotivationValidationError("No valid response format")
        return clean_motivation(text)


@dataclass
class MotivationOutcome:
    """A motivation line for a newly reached milestone.

    Attributes:
        text: The line to show
        milestone: Milestone the line belongs to
        from_cache: True if no upstream request was made
        fallback: True if the line came from a static pool
    """

    text: str
    milestone: int
    from_cache: bool = False
    fallback: bool = False


class MilestoneMotivationCache:
    """Gates motivation requests on 5% milestones and caches the results.

    Args:
        generator: Line generator (performs the upstream request)
        store: Bounded store for cached lines; a private one is created
            when omitted
    """

    def __init__(
        self,
        generator: MotivationGenerator,
        store: BoundedStateStore | None = None,
    ) -> None:
        self._generator = generator
        self._store = store if store is not None else BoundedStateStore()

    @property
    def store(self) -> BoundedStateStore:
        return self._store

    @staticmethod
    def cache_key(task: str, progress: ChecklistProgress) -> MotivationKey:
        return (task, progress.milestone, progress.completed)

    @staticmethod
    def reaches_new_milestone(progress: ChecklistProgress, last_milestone: int) -> bool:
        """True if progress sits in a milestone above the last recorded one."""
        milestone = progress.milestone
        return milestone >= MILESTONE_STEP and milestone > last_milestone

    async def motivation_for(self, task: str, progress: ChecklistProgress) -> MotivationOutcome:
        """Return the cached line for this progress point, requesting it on a miss.

        Never raises: failures resolve to the stage's fallback pool.
        """
        key = self.cache_key(task, progress)
        cached = self._store.get(key)
        if cached is not None:
            logger.debug("motivation_cache_hit", milestone=progress.milestone)
            return MotivationOutcome(text=cached, milestone=progress.milestone, from_cache=True)

        fallback = False
        try:
            text = await self._generator.generate(task, progress)
        except Exception as e:
            logger.warning(
                "motivation_generation_failed",
                milestone=progress.milestone,
                stage=progress.stage,
                error=str(e),
            )
            text = fallback_motivation(progress.stage, progress.completed)
            fallback = True

        self._store.set(key, text)
        return MotivationOutcome(text=text, milestone=progress.milestone, fallback=fallback)

    async def on_progress(
        self,
        task: str,
        progress: ChecklistProgress,
        last_milestone: int,
    ) -> MotivationOutcome | None:
        """Handle a checklist mutation.

        Args:
            task: Task title the checklist belongs to
            progress: Progress after the mutation
            last_milestone: Last milestone recorded for this checklist message

        Returns:
            MotivationOutcome if a new milestone was reached, else None
        """
        if not self.reaches_new_milestone(progress, last_milestone):
            return None
        return await self.motivation_for(task, progress)
