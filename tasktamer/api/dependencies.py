"""
FastAPI dependencies for the Task Tamer REST API.
"""

from __future__ import annotations

from fastapi import Request

from tasktamer.services.workspace import ConversationWorkspace


def get_workspace(request: Request) -> ConversationWorkspace:
    """The workspace created by create_app() and kept on app.state."""
    workspace: ConversationWorkspace = request.app.state.workspace
    return workspace
