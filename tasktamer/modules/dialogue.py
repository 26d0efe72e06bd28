"""
Dialogue State Machine for Task Tamer.

One DialogueSession drives one Conversation. Every user turn is appended
to the history first, then the current dialogue state decides whether to
answer locally or to issue one upstream request:

    EMPTY                        -> guidance reply       -> AWAITING_TASK
    AWAITING_TASK                -> capture task text    -> AWAITING_BREAKDOWN_DECISION
    AWAITING_BREAKDOWN_DECISION  "1"  -> breakdown       -> CHECKLIST_ACTIVE | NORMAL_CHAT
                                 else -> ask for details (no change)
    CHECKLIST_ACTIVE             same task -> refinement (no change)
                                 other     -> "open a new chat" (no change)
    NORMAL_CHAT                  plain chat; a breakdown offer in the reply
                                 re-enters AWAITING_BREAKDOWN_DECISION

An upstream failure never escapes a turn: it becomes a visible
"Failed to reach AI: <cause>" reply and the conversation keeps the state
it had before the request.

Turns and toggles are serialized per session with an asyncio.Lock, so a
conversation never has two upstream requests in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from tasktamer.config.settings import Settings
from tasktamer.core.dialogue_state import (
    AwaitingBreakdownDecisionState,
    AwaitingTaskState,
    ChecklistActiveState,
    DialoguePhase,
    DialogueState,
    EmptyState,
    NormalChatState,
)
from tasktamer.core.models import Conversation, Message, MessageRole
from tasktamer.core.phrases import DEFAULT_PHRASES, PhraseSet
from tasktamer.core.turn_result import (
    ChecklistEvent,
    ChecklistEventType,
    ToggleResult,
    TurnResult,
)
from tasktamer.lib.exceptions import UpstreamError
from tasktamer.modules.dialogue_helpers import (
    BREAKDOWN_DECISION_REPLY,
    DIFFERENT_TASK_REPLY,
    GREETING_REPLY,
    MORE_DETAILS_REPLY,
    TASK_CAPTURED_REPLY,
    TASK_REQUEST_REPLY,
    assistant_reply,
    extract_title,
    upstream_failure_reply,
)
from tasktamer.modules.prompts import build_breakdown_prompt, build_refinement_prompt
from tasktamer.modules.response_normalizer import NormalizedResponse, normalize_response
from tasktamer.services.llm_client import CompletionClient
from tasktamer.services.motivation import MilestoneMotivationCache, MotivationGenerator
from tasktamer.services.state_store import BoundedStateStore

logger = structlog.get_logger(__name__)

EventCallback = Callable[[ChecklistEvent], Awaitable[None]]


class DialogueSession:
    """
    Per-conversation dialogue driver.

    Exposes the two entry points the rendering side calls:
    send_user_input(text) and toggle_step(message_id, step_id).

    Args:
        conversation: The conversation this session owns
        client: Upstream completion collaborator
        phrases: Phrase predicates (greeting, breakdown offer, different task)
        motivation: Motivation cache; built from settings when omitted
        settings: Used only to size the default motivation store
        on_event: Optional async callback receiving checklist events
    """

    def __init__(
        self,
        conversation: Conversation,
        client: CompletionClient,
        phrases: PhraseSet = DEFAULT_PHRASES,
        motivation: MilestoneMotivationCache | None = None,
        settings: Settings | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self.conversation = conversation
        self._client = client
        self._phrases = phrases
        self._on_event = on_event
        self._lock = asyncio.Lock()

        if motivation is None:
            settings = settings or Settings()
            motivation = MilestoneMotivationCache(
                MotivationGenerator(client, model=conversation.model),
                BoundedStateStore(
                    max_size=settings.motivation_cache_size,
                    default_ttl=settings.motivation_cache_ttl,
                ),
            )
        self._motivation = motivation

    @property
    def state(self) -> DialogueState:
        return self.conversation.state

    @property
    def phase(self) -> DialoguePhase:
        return self.conversation.state.phase

    @property
    def busy(self) -> bool:
        """True while a turn or toggle is being processed."""
        return self._lock.locked()

    # =========================================================================
    # User turns
    # =========================================================================

    async def send_user_input(self, text: str) -> TurnResult | None:
        """
        Process one user turn.

        The user's message is appended before the state is evaluated. Never
        raises on upstream failure.

        Args:
            text: Raw user input (trimmed before use)

        Returns:
            TurnResult with the appended messages and resulting phase, or
            None for blank input, which is dropped without touching the
            conversation
        """
        text = text.strip()
        if not text:
            logger.debug("blank_input_ignored", conversation_id=self.conversation.id)
            return None

        async with self._lock:
            user_message = self.conversation.append(
                Message(role=MessageRole.USER, text=text)
            )
            result = TurnResult(user_message=user_message)
            previous = self.state.phase

            await self._dispatch(text, result)

            result.phase = self.state.phase
            if result.phase != previous:
                logger.info(
                    "dialogue_transition",
                    conversation_id=self.conversation.id,
                    from_phase=previous.value,
                    to_phase=result.phase.value,
                )
            return result

    async def _dispatch(self, text: str, result: TurnResult) -> None:
        state = self.state

        if isinstance(state, EmptyState):
            reply = GREETING_REPLY if self._phrases.is_greeting(text) else TASK_REQUEST_REPLY
            self._reply(result, reply)
            self.conversation.state = AwaitingTaskState()

        elif isinstance(state, AwaitingTaskState):
            self.conversation.state = AwaitingBreakdownDecisionState(task_text=text)
            self._reply(result, TASK_CAPTURED_REPLY)

        elif isinstance(state, AwaitingBreakdownDecisionState):
            if self._phrases.is_breakdown_decision(text):
                await self._handle_breakdown(state, result)
            else:
                # Extra detail is not merged into the captured task
                self._reply(result, MORE_DETAILS_REPLY)

        elif isinstance(state, ChecklistActiveState):
            if self._phrases.is_different_task(text, state.task_text):
                self._reply(result, DIFFERENT_TASK_REPLY)
            else:
                await self._handle_refinement(state, text, result)

        elif isinstance(state, NormalChatState):
            await self._handle_chat(state, text, result)

    async def _handle_breakdown(
        self,
        state: AwaitingBreakdownDecisionState,
        result: TurnResult,
    ) -> None:
        """Request a checklist for the captured task (not the literal "1")."""
        payload = await self._request(build_breakdown_prompt(state.task_text), result)
        if payload is None:
            return

        normalized = normalize_response(payload, headings_as_steps=True)
        self.conversation.title = extract_title(state.task_text)
        self._append_normalized(result, normalized)

        if normalized.has_steps:
            self.conversation.state = ChecklistActiveState(task_text=state.task_text)
        else:
            self.conversation.state = NormalChatState(task_text=state.task_text)

    async def _handle_refinement(
        self,
        state: ChecklistActiveState,
        detail: str,
        result: TurnResult,
    ) -> None:
        payload = await self._request(build_refinement_prompt(state.task_text, detail), result)
        if payload is None:
            return
        self._append_normalized(result, normalize_response(payload, headings_as_steps=True))

    async def _handle_chat(self, state: NormalChatState, text: str, result: TurnResult) -> None:
        payload = await self._request(text, result)
        if payload is None:
            return

        normalized = normalize_response(payload, extract_steps=False)
        self._append_normalized(result, normalized)

        if self._phrases.offers_breakdown(normalized.text):
            self.conversation.state = AwaitingBreakdownDecisionState(task_text=state.task_text)
            self._reply(result, BREAKDOWN_DECISION_REPLY)

    async def _request(self, prompt_text: str, result: TurnResult) -> Any | None:
        """
        Issue one upstream request with the history before this turn.

        Returns:
            The payload, or None after appending a failure reply
        """
        try:
            return await self._client.complete(
                prompt_text,
                history=self.conversation.history(exclude_last=1),
                model=self.conversation.model,
            )
        except Exception as e:
            cause = e.cause if isinstance(e, UpstreamError) else str(e) or type(e).__name__
            logger.warning(
                "upstream_request_failed",
                conversation_id=self.conversation.id,
                phase=self.state.phase.value,
                error=cause,
            )
            result.upstream_failed = True
            self._append(result, upstream_failure_reply(cause))
            return None

    def _reply(self, result: TurnResult, text: str) -> None:
        self._append(result, assistant_reply(text))

    def _append_normalized(self, result: TurnResult, normalized: NormalizedResponse) -> None:
        self._append(
            result,
            Message(
                role=MessageRole.ASSISTANT,
                text=normalized.text,
                steps=normalized.steps,
            ),
        )

    def _append(self, result: TurnResult, message: Message) -> None:
        result.replies.append(self.conversation.append(message))

    # =========================================================================
    # Checklist toggles
    # =========================================================================

    async def toggle_step(self, message_id: str, step_id: str) -> ToggleResult | None:
        """
        Flip one step's done flag and update motivation.

        A no-op returning None if the id pair does not resolve to a step.

        Returns:
            ToggleResult with progress, any new motivation line and events
        """
        async with self._lock:
            message = self.conversation.find_message(message_id)
            step = message.find_step(step_id) if message is not None else None
            if message is None or step is None:
                logger.debug(
                    "toggle_step_unresolved",
                    conversation_id=self.conversation.id,
                    message_id=message_id,
                    step_id=step_id,
                )
                return None

            step.done = not step.done
            progress = message.progress()
            if progress is None:
                return None
            result = ToggleResult(
                message_id=message_id,
                step_id=step_id,
                done=step.done,
                progress=progress,
            )

            last_milestone = self.conversation.milestones.get(message_id, 0)
            outcome = await self._motivation.on_progress(
                self.conversation.title, progress, last_milestone,
            )
            if outcome is not None:
                self.conversation.milestones[message_id] = outcome.milestone
                result.motivation = outcome.text
                result.events.append(self._event(
                    ChecklistEventType.MOTIVATION_UPDATED,
                    message_id,
                    {"text": outcome.text, "milestone": outcome.milestone},
                ))

            if progress.is_complete:
                result.events.append(self._event(
                    ChecklistEventType.CHECKLIST_COMPLETED,
                    message_id,
                    {"total": progress.total},
                ))

        for event in result.events:
            await self._emit(event)
        return result

    def _event(
        self,
        event_type: ChecklistEventType,
        message_id: str,
        payload: dict[str, Any],
    ) -> ChecklistEvent:
        return ChecklistEvent(
            event_type=event_type,
            conversation_id=self.conversation.id,
            message_id=message_id,
            payload=payload,
        )

    async def _emit(self, event: ChecklistEvent) -> None:
        """Deliver an event to the subscriber; subscriber errors are logged only."""
        if self._on_event is None:
            return
        try:
            await self._on_event(event)
        except Exception as e:
            logger.error(
                "checklist_event_delivery_failed",
                event_type=event.event_type.value,
                conversation_id=event.conversation_id,
                error=str(e),
            )
