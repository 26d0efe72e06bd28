"""
Unit tests for the Dialogue State Machine.

Tests cover:
- Greeting and guidance from EMPTY
- Task capture
- Breakdown decision ("1" vs anything else)
- Checklist refinement and different-task detection
- Normal chat and breakdown-offer re-entry
- Upstream failures leave the state untouched
- Step toggles, milestone motivation and checklist events
- Per-session serialization of turns
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from tasktamer.core.dialogue_state import (
    AwaitingBreakdownDecisionState,
    AwaitingTaskState,
    ChecklistActiveState,
    DialoguePhase,
    NormalChatState,
)
from tasktamer.core.models import Conversation, MessageRole
from tasktamer.core.phrases import PhraseSet
from tasktamer.core.turn_result import ChecklistEventType
from tasktamer.lib.exceptions import ConfigurationError, UpstreamError
from tasktamer.modules.dialogue import DialogueSession
from tasktamer.modules.dialogue_helpers import (
    BREAKDOWN_DECISION_REPLY,
    DIFFERENT_TASK_REPLY,
    GREETING_REPLY,
    MORE_DETAILS_REPLY,
    TASK_REQUEST_REPLY,
)
from tasktamer.services.motivation import MilestoneMotivationCache, MotivationGenerator
from tasktamer.services.state_store import BoundedStateStore

# =============================================================================
# TestEmptyState
# =============================================================================


class TestEmptyState:
    """Test the first turn of a conversation."""

    @pytest.mark.asyncio
    async def test_greeting(self, session: DialogueSession, client: AsyncMock) -> None:
        """"hello" gets exactly one reply and moves to AWAITING_TASK."""
        result = await session.send_user_input("hello")
        assert result.reply_texts == [GREETING_REPLY]
        assert result.phase == DialoguePhase.AWAITING_TASK
        assert isinstance(session.state, AwaitingTaskState)
        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["Hey there", "HI", "greetings!", "yo, what's up"])
    async def test_greeting_variants(self, session: DialogueSession, text: str) -> None:
        result = await session.send_user_input(text)
        assert result.reply_texts == [GREETING_REPLY]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["clean my garage", "history essay", "yoga plan"])
    async def test_non_greeting(self, session: DialogueSession, text: str) -> None:
        result = await session.send_user_input(text)
        assert result.reply_texts == [TASK_REQUEST_REPLY]
        assert result.phase == DialoguePhase.AWAITING_TASK

    @pytest.mark.asyncio
    async def test_user_message_appended_first(self, session: DialogueSession) -> None:
        result = await session.send_user_input("  hello  ")
        messages = session.conversation.messages
        assert messages[0] is result.user_message
        assert messages[0].role == MessageRole.USER
        assert messages[0].text == "hello"
        assert messages[1].role == MessageRole.ASSISTANT


# =============================================================================
# TestTaskCapture
# =============================================================================


class TestTaskCapture:
    """Test AWAITING_TASK -> AWAITING_BREAKDOWN_DECISION."""

    @pytest.mark.asyncio
    async def test_captures_task(
        self, awaiting_task_conversation: Conversation, client: AsyncMock,
    ) -> None:
        session = DialogueSession(awaiting_task_conversation, client)
        result = await session.send_user_input("clean my garage")

        assert "Type 1 to break into subtasks" in result.reply_texts[0]
        assert session.state == AwaitingBreakdownDecisionState(task_text="clean my garage")
        assert session.state.captured_task == "clean my garage"
        assert result.phase == DialoguePhase.AWAITING_BREAKDOWN_DECISION
        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    async def test_blank_input_is_dropped(
        self, awaiting_task_conversation: Conversation, client: AsyncMock, text: str,
    ) -> None:
        session = DialogueSession(awaiting_task_conversation, client)
        before = len(awaiting_task_conversation.messages)

        assert await session.send_user_input(text) is None
        assert len(awaiting_task_conversation.messages) == before
        assert session.state == AwaitingTaskState()

    @pytest.mark.asyncio
    async def test_blank_input_does_not_weaken_different_task_guard(
        self, conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "- Sort items\n- Sweep floor"}
        session = DialogueSession(conversation, client)
        await session.send_user_input("hello")
        await session.send_user_input("   ")
        assert session.phase == DialoguePhase.AWAITING_TASK

        await session.send_user_input("clean my garage")
        await session.send_user_input("1")
        assert session.state == ChecklistActiveState(task_text="clean my garage")

        client.complete.reset_mock()
        result = await session.send_user_input("something totally else")
        assert result is not None
        assert result.reply_texts == [DIFFERENT_TASK_REPLY]
        client.complete.assert_not_awaited()


# =============================================================================
# TestBreakdownDecision
# =============================================================================


class TestBreakdownDecision:
    """Test AWAITING_BREAKDOWN_DECISION."""

    @pytest.mark.asyncio
    async def test_other_input_asks_for_details(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        session = DialogueSession(awaiting_decision_conversation, client)
        result = await session.send_user_input("maybe later")

        assert result.reply_texts == [MORE_DETAILS_REPLY]
        assert session.state == AwaitingBreakdownDecisionState(task_text="clean my garage")
        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["0", "11", "1.", "one", "yes 1"])
    async def test_only_exact_one_triggers(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock, text: str,
    ) -> None:
        session = DialogueSession(awaiting_decision_conversation, client)
        await session.send_user_input(text)
        client.complete.assert_not_awaited()
        assert session.phase == DialoguePhase.AWAITING_BREAKDOWN_DECISION

    @pytest.mark.asyncio
    async def test_one_produces_checklist(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {
            "text": "1. Buy boxes\n2. Buy boxes\n- [x] Label boxes",
        }
        session = DialogueSession(awaiting_decision_conversation, client)
        result = await session.send_user_input(" 1 ")

        assert len(result.replies) == 1
        reply = result.replies[0]
        assert reply.text == ""
        assert [(s.text, s.done) for s in reply.steps] == [
            ("Buy boxes", False),
            ("Label boxes", True),
        ]
        assert result.phase == DialoguePhase.CHECKLIST_ACTIVE
        assert session.state == ChecklistActiveState(task_text="clean my garage")
        assert session.conversation.title == "Clean my garage"

    @pytest.mark.asyncio
    async def test_breakdown_uses_captured_task_and_prior_history(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "- Sweep"}
        session = DialogueSession(awaiting_decision_conversation, client)
        await session.send_user_input("1")

        args, kwargs = client.complete.call_args
        assert "clean my garage" in args[0]
        assert args[0] != "1"
        history = kwargs["history"]
        assert history[-1] == {"role": "assistant", "text": "Got it."}
        assert {"role": "user", "text": "1"} not in history
        assert kwargs["model"] is None

    @pytest.mark.asyncio
    async def test_model_override_is_sent(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        awaiting_decision_conversation.model = "llama-3"
        session = DialogueSession(awaiting_decision_conversation, client)
        await session.send_user_input("1")
        assert client.complete.call_args.kwargs["model"] == "llama-3"

    @pytest.mark.asyncio
    async def test_no_steps_moves_to_normal_chat(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "Start by clearing the floor."}
        session = DialogueSession(awaiting_decision_conversation, client)
        result = await session.send_user_input("1")

        assert result.reply_texts == ["Start by clearing the floor."]
        assert result.replies[0].steps is None
        assert session.state == NormalChatState(task_text="clean my garage")

    @pytest.mark.asyncio
    async def test_upstream_failure_keeps_state_and_title(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.side_effect = UpstreamError("AI API error 503: busy", status_code=503)
        session = DialogueSession(awaiting_decision_conversation, client)
        result = await session.send_user_input("1")

        assert result.upstream_failed is True
        assert result.reply_texts == ["Failed to reach AI: AI API error 503: busy"]
        assert session.state == AwaitingBreakdownDecisionState(task_text="clean my garage")
        assert session.conversation.title == "Chat 1"
        assert session.conversation.messages[-2].text == "1"

    @pytest.mark.asyncio
    async def test_retry_after_failure(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.side_effect = [UpstreamError("timeout"), {"text": "- Sweep"}]
        session = DialogueSession(awaiting_decision_conversation, client)
        await session.send_user_input("1")
        result = await session.send_user_input("1")
        assert result.phase == DialoguePhase.CHECKLIST_ACTIVE

    @pytest.mark.asyncio
    async def test_configuration_error_is_contained(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.side_effect = ConfigurationError("Missing required env: TASKTAMER_AI_API_URL")
        session = DialogueSession(awaiting_decision_conversation, client)
        result = await session.send_user_input("1")
        assert result.reply_texts == [
            "Failed to reach AI: Missing required env: TASKTAMER_AI_API_URL"
        ]
        assert result.phase == DialoguePhase.AWAITING_BREAKDOWN_DECISION


# =============================================================================
# TestChecklistActive
# =============================================================================


class TestChecklistActive:
    """Test refinement and different-task detection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text",
        [
            "plan my wedding",
            "new task: clean my garage",
            "switch the task to clean my garage",
            "another task",
        ],
    )
    async def test_different_task(
        self, checklist_conversation: Conversation, client: AsyncMock, text: str,
    ) -> None:
        session = DialogueSession(checklist_conversation, client)
        result = await session.send_user_input(text)
        assert result.reply_texts == [DIFFERENT_TASK_REPLY]
        assert result.phase == DialoguePhase.CHECKLIST_ACTIVE
        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refinement(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "- [x] Sort items\n- Sweep floor\n### Paint walls"}
        session = DialogueSession(checklist_conversation, client)
        result = await session.send_user_input("Clean My Garage also needs the walls painted")

        prompt = client.complete.call_args.args[0]
        assert "walls painted" in prompt
        history = client.complete.call_args.kwargs["history"]
        assert "- [ ] Sort items" in history[-1]["text"]

        assert [s.text for s in result.replies[0].steps] == [
            "Sort items", "Sweep floor", "Paint walls",
        ]
        assert result.phase == DialoguePhase.CHECKLIST_ACTIVE

    @pytest.mark.asyncio
    async def test_refinement_failure(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.side_effect = UpstreamError("Request timed out after 60s")
        session = DialogueSession(checklist_conversation, client)
        result = await session.send_user_input("clean my garage before friday")
        assert result.upstream_failed
        assert session.state == ChecklistActiveState(task_text="clean my garage")


# =============================================================================
# TestNormalChat
# =============================================================================


class TestNormalChat:
    """Test NORMAL_CHAT forwarding and breakdown-offer detection."""

    @pytest.mark.asyncio
    async def test_plain_chat(
        self, normal_chat_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "Try these:\n- Shelves\n- Floor"}
        session = DialogueSession(normal_chat_conversation, client)
        result = await session.send_user_input("what first?")

        assert client.complete.call_args.args[0] == "what first?"
        assert result.reply_texts == ["Try these:\n- Shelves\n- Floor"]
        assert result.replies[0].steps is None
        assert result.phase == DialoguePhase.NORMAL_CHAT

    @pytest.mark.asyncio
    async def test_breakdown_offer_reenters_decision(
        self, normal_chat_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "That's a lot. Should I break this down for you?"}
        session = DialogueSession(normal_chat_conversation, client)
        result = await session.send_user_input("it feels huge")

        assert result.reply_texts[-1] == BREAKDOWN_DECISION_REPLY
        assert len(result.replies) == 2
        assert session.state == AwaitingBreakdownDecisionState(task_text="clean my garage")

    @pytest.mark.asyncio
    async def test_custom_phrase_set(
        self, normal_chat_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.return_value = {"text": "Shall we chunk it?"}
        phrases = PhraseSet(breakdown_offers=("shall we chunk it",))
        session = DialogueSession(normal_chat_conversation, client, phrases=phrases)
        result = await session.send_user_input("help")
        assert result.phase == DialoguePhase.AWAITING_BREAKDOWN_DECISION


# =============================================================================
# TestToggleStep
# =============================================================================


def _motivation(generate: AsyncMock) -> MilestoneMotivationCache:
    generator = MotivationGenerator(AsyncMock())
    generator.generate = generate  # type: ignore[method-assign]
    return MilestoneMotivationCache(generator, BoundedStateStore())


class TestToggleStep:
    """Test toggle_step() and the checklist events it raises."""

    @pytest.mark.asyncio
    async def test_unknown_ids_are_noop(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        session = DialogueSession(checklist_conversation, client)
        assert await session.toggle_step("missing", "step-1") is None
        assert await session.toggle_step("checklist-msg", "step-99") is None
        assert all(not s.done for s in checklist_conversation.messages[-1].steps)

    @pytest.mark.asyncio
    async def test_toggle_flips_back_and_forth(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        session = DialogueSession(
            checklist_conversation, client, motivation=_motivation(AsyncMock(return_value="Floor clear! 🧹")),
        )
        first = await session.toggle_step("checklist-msg", "step-1")
        second = await session.toggle_step("checklist-msg", "step-1")
        assert first is not None and first.done is True
        assert second is not None and second.done is False
        assert second.progress.completed == 0

    @pytest.mark.asyncio
    async def test_motivation_on_new_milestone(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        generate = AsyncMock(return_value="Garage taming! 🧹")
        session = DialogueSession(checklist_conversation, client, motivation=_motivation(generate))

        result = await session.toggle_step("checklist-msg", "step-1")

        assert result is not None
        assert result.progress.percent == 33
        assert result.motivation == "Garage taming! 🧹"
        assert checklist_conversation.milestones["checklist-msg"] == 30
        assert [e.event_type for e in result.events] == [ChecklistEventType.MOTIVATION_UPDATED]
        task, progress = generate.call_args.args
        assert task == "Clean my garage"
        assert progress.completed == 1

    @pytest.mark.asyncio
    async def test_no_request_when_going_back(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        generate = AsyncMock(return_value="Garage taming! 🧹")
        session = DialogueSession(checklist_conversation, client, motivation=_motivation(generate))
        await session.toggle_step("checklist-msg", "step-1")
        result = await session.toggle_step("checklist-msg", "step-1")
        again = await session.toggle_step("checklist-msg", "step-1")

        assert result is not None and result.motivation is None
        assert again is not None and again.motivation is None
        assert generate.await_count == 1

    @pytest.mark.asyncio
    async def test_completion_event(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        received = []

        async def on_event(event):
            received.append(event)

        session = DialogueSession(
            checklist_conversation,
            client,
            motivation=_motivation(AsyncMock(return_value="Garage conquered! 🏆")),
            on_event=on_event,
        )
        for step_id in ("step-1", "step-2", "step-3"):
            result = await session.toggle_step("checklist-msg", step_id)

        assert result is not None
        assert result.completed
        assert ChecklistEventType.CHECKLIST_COMPLETED in [e.event_type for e in result.events]
        assert received[-1].event_type == ChecklistEventType.CHECKLIST_COMPLETED
        assert received[-1].conversation_id == checklist_conversation.id

    @pytest.mark.asyncio
    async def test_subscriber_errors_are_contained(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        session = DialogueSession(
            checklist_conversation,
            client,
            motivation=_motivation(AsyncMock(return_value="Garage taming! 🧹")),
            on_event=AsyncMock(side_effect=RuntimeError("timer gone")),
        )
        result = await session.toggle_step("checklist-msg", "step-1")
        assert result is not None and result.done

    @pytest.mark.asyncio
    async def test_motivation_failure_uses_fallback(
        self, checklist_conversation: Conversation, client: AsyncMock,
    ) -> None:
        client.complete.side_effect = UpstreamError("down")
        session = DialogueSession(checklist_conversation, client)
        result = await session.toggle_step("checklist-msg", "step-1")
        assert result is not None
        assert result.motivation == "First sparks! ⚡"


# =============================================================================
# TestSerialization
# =============================================================================


class TestSerialization:
    """Test that turns on one session never interleave."""

    @pytest.mark.asyncio
    async def test_turns_are_serialized(
        self, awaiting_decision_conversation: Conversation, client: AsyncMock,
    ) -> None:
        in_flight = 0
        peak = 0

        async def slow_complete(*args, **kwargs):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return {"text": "- Sweep"}

        client.complete.side_effect = slow_complete
        session = DialogueSession(awaiting_decision_conversation, client)
        first, second = await asyncio.gather(
            session.send_user_input("1"),
            session.send_user_input("clean my garage and the loft"),
        )

        assert peak == 1
        assert first.phase == DialoguePhase.CHECKLIST_ACTIVE
        assert second.phase == DialoguePhase.CHECKLIST_ACTIVE
        assert client.complete.await_count == 2
