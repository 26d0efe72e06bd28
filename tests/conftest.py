"""
Shared test fixtures for Task Tamer.

This module provides common fixtures used across all test modules:
- Environment setup (no real endpoint, dev-mode logging)
- Fake upstream completion client (AsyncMock)
- Conversations in each dialogue phase
- Dialogue sessions wired to the fake client

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from unittest.mock import AsyncMock

import pytest

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("TASKTAMER_DEV_MODE", "1")
os.environ.pop("TASKTAMER_AI_API_URL", None)

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from tasktamer.core.dialogue_state import (  # noqa: E402
    AwaitingBreakdownDecisionState,
    AwaitingTaskState,
    ChecklistActiveState,
    NormalChatState,
)
from tasktamer.core.models import Conversation, Message, MessageRole, Step  # noqa: E402
from tasktamer.modules.dialogue import DialogueSession  # noqa: E402

# ---------------------------------------------------------------------------
# 2. Upstream client
# ---------------------------------------------------------------------------


@pytest.fixture()
def client() -> AsyncMock:
    """Fake completion client; tests set return_value or side_effect."""
    fake = AsyncMock()
    fake.complete = AsyncMock(return_value={"text": "ok"})
    return fake


# ---------------------------------------------------------------------------
# 3. Conversations per phase
# ---------------------------------------------------------------------------


@pytest.fixture()
def conversation() -> Conversation:
    """A fresh, empty conversation."""
    return Conversation(title="Chat 1")


@pytest.fixture()
def awaiting_task_conversation() -> Conversation:
    conv = Conversation(title="Chat 1", state=AwaitingTaskState())
    conv.append(Message(role=MessageRole.USER, text="hello"))
    conv.append(Message(role=MessageRole.ASSISTANT, text="What task do you need to break down?"))
    return conv


@pytest.fixture()
def awaiting_decision_conversation(awaiting_task_conversation: Conversation) -> Conversation:
    conv = awaiting_task_conversation
    conv.append(Message(role=MessageRole.USER, text="clean my garage"))
    conv.append(Message(role=MessageRole.ASSISTANT, text="Got it."))
    conv.state = AwaitingBreakdownDecisionState(task_text="clean my garage")
    return conv


@pytest.fixture()
def checklist_conversation(awaiting_decision_conversation: Conversation) -> Conversation:
    """Conversation with an active three-step checklist."""
    conv = awaiting_decision_conversation
    conv.title = "Clean my garage"
    conv.append(Message(role=MessageRole.USER, text="1"))
    conv.append(
        Message(
            id="checklist-msg",
            role=MessageRole.ASSISTANT,
            steps=[
                Step(id="step-1", text="Sort items"),
                Step(id="step-2", text="Sweep floor"),
                Step(id="step-3", text="Take out trash"),
            ],
        )
    )
    conv.state = ChecklistActiveState(task_text="clean my garage")
    return conv


@pytest.fixture()
def normal_chat_conversation(awaiting_decision_conversation: Conversation) -> Conversation:
    conv = awaiting_decision_conversation
    conv.append(Message(role=MessageRole.USER, text="1"))
    conv.append(Message(role=MessageRole.ASSISTANT, text="Start with the shelves."))
    conv.state = NormalChatState(task_text="clean my garage")
    return conv


# ---------------------------------------------------------------------------
# 4. Sessions
# ---------------------------------------------------------------------------


@pytest.fixture()
def session(conversation: Conversation, client: AsyncMock) -> DialogueSession:
    return DialogueSession(conversation, client)
