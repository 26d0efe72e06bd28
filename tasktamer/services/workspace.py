"""
Conversation Workspace for Task Tamer.

Holds the ordered list of conversations (newest first) and one
DialogueSession per conversation. The workspace never touches storage:
export() hands the persistence side a JSON-compatible structure and
load() rebuilds conversations from one.

A fresh workspace starts with a single empty conversation titled
"Chat 1"; each new conversation is titled "Chat <n>" where n is the
conversation count after creation.
"""

from __future__ import annotations

from typing import Any

import structlog

from tasktamer.config.settings import Settings
from tasktamer.core.models import Conversation
from tasktamer.core.phrases import DEFAULT_PHRASES, PhraseSet
from tasktamer.lib.exceptions import ConversationNotFoundError, SerializationError
from tasktamer.modules.dialogue import DialogueSession, EventCallback
from tasktamer.services.llm_client import CompletionClient

logger = structlog.get_logger(__name__)


class ConversationWorkspace:
    """
    Ordered conversation list with lazily created dialogue sessions.

    Args:
        client: Upstream completion collaborator shared by all sessions
        settings: Application settings (motivation store sizing)
        phrases: Phrase predicates handed to every session
        on_event: Optional checklist event callback handed to every session
    """

    def __init__(
        self,
        client: CompletionClient,
        settings: Settings | None = None,
        phrases: PhraseSet = DEFAULT_PHRASES,
        on_event: EventCallback | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or Settings()
        self._phrases = phrases
        self._on_event = on_event
        self._conversations: list[Conversation] = []
        self._sessions: dict[str, DialogueSession] = {}
        self.new_conversation()

    @property
    def conversations(self) -> list[Conversation]:
        """Conversations, newest first."""
        return list(self._conversations)

    def new_conversation(self, model: str | None = None) -> Conversation:
        """Create an empty conversation and put it first."""
        conversation = Conversation(
            title=f"Chat {len(self._conversations) + 1}",
            model=model,
        )
        self._conversations.insert(0, conversation)
        logger.info("conversation_created", conversation_id=conversation.id)
        return conversation

    def get(self, conversation_id: str) -> Conversation:
        """
        Look up a conversation.

        Raises:
            ConversationNotFoundError: Unknown id
        """
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        raise ConversationNotFoundError(conversation_id)

    def session_for(self, conversation_id: str) -> DialogueSession:
        """Get (or create) the dialogue session of a conversation."""
        session = self._sessions.get(conversation_id)
        if session is None:
            session = DialogueSession(
                self.get(conversation_id),
                self._client,
                phrases=self._phrases,
                settings=self._settings,
                on_event=self._on_event,
            )
            self._sessions[conversation_id] = session
        return session

    def export(self) -> list[dict[str, Any]]:
        """Serialize every conversation, newest first."""
        return [conversation.to_dict() for conversation in self._conversations]

    def load(self, data: list[dict[str, Any]]) -> None:
        """
        Replace the workspace contents with previously exported data.

        An empty list leaves a single fresh "Chat 1", as at start.

        Raises:
            SerializationError: Payload is not a list of valid conversations
        """
        if not isinstance(data, list):
            raise SerializationError("Workspace payload must be a list")
        conversations = [Conversation.from_dict(item) for item in data]

        self._conversations = conversations
        self._sessions.clear()
        if not self._conversations:
            self.new_conversation()
        logger.info("workspace_loaded", conversations=len(self._conversations))
