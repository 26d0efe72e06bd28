"""
REST API Routes for Task Tamer.

All responses use the {"success", "data"} envelope.

Endpoints (all under /api/v1 prefix):
- /health - Health check
- /conversations - Export all conversations / start a new one
- /conversations/{id} - One conversation
- /conversations/{id}/messages - Send one user turn
- /conversations/{id}/messages/{message_id}/steps/{step_id}/toggle - Flip a step

Unknown conversation ids surface as ConversationNotFoundError and are
mapped to 404 by the handler installed in create_app().
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from tasktamer import __version__
from tasktamer.api.dependencies import get_workspace
from tasktamer.api.schemas import (
    CreateConversationRequest,
    SendMessageRequest,
    success_response,
)
from tasktamer.services.workspace import ConversationWorkspace

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# =============================================================================
# Health
# =============================================================================


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return success_response({"status": "ok", "version": __version__})


# =============================================================================
# Conversations
# =============================================================================


@router.get("/conversations")
async def list_conversations(
    workspace: ConversationWorkspace = Depends(get_workspace),
) -> dict[str, Any]:
    """Export every conversation, newest first."""
    conversations = workspace.export()
    return success_response({"conversations": conversations, "total": len(conversations)})


@router.post("/conversations")
async def create_conversation(
    data: CreateConversationRequest | None = None,
    workspace: ConversationWorkspace = Depends(get_workspace),
) -> dict[str, Any]:
    """Start a new, empty conversation."""
    conversation = workspace.new_conversation(model=data.model if data else None)
    return success_response(conversation.to_dict())


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    workspace: ConversationWorkspace = Depends(get_workspace),
) -> dict[str, Any]:
    return success_response(workspace.get(conversation_id).to_dict())


@router.post("/conversations/{conversation_id}/messages")
async def send_message(
    conversation_id: str,
    data: SendMessageRequest,
    workspace: ConversationWorkspace = Depends(get_workspace),
) -> dict[str, Any]:
    """
    Send one user turn to the dialogue state machine.

    Upstream failures do not produce an error status: the turn result
    carries the failure reply and upstream_failed=true.
    """
    session = workspace.session_for(conversation_id)
    result = await session.send_user_input(data.text)
    return success_response(result.to_dict() if result is not None else None)


@router.post("/conversations/{conversation_id}/messages/{message_id}/steps/{step_id}/toggle")
async def toggle_step(
    conversation_id: str,
    message_id: str,
    step_id: str,
    workspace: ConversationWorkspace = Depends(get_workspace),
) -> dict[str, Any]:
    """Flip one step's done flag; unknown message or step ids are a no-op."""
    session = workspace.session_for(conversation_id)
    result = await session.toggle_step(message_id, step_id)
    if result is None:
        logger.info(
            "toggle_ignored",
            conversation_id=conversation_id,
            message_id=message_id,
            step_id=step_id,
        )
    return success_response(result.to_dict() if result is not None else None)
