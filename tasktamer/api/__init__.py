"""
REST API Layer for Task Tamer.

Provides:
- FastAPI application factory
- Conversation, message and checklist-toggle endpoints under /api/v1
- Global exception handlers producing the error envelope
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tasktamer import __version__
from tasktamer.api.routes import router
from tasktamer.api.schemas import error_response
from tasktamer.config.settings import Settings, get_settings
from tasktamer.lib.errors import INTERNAL_ERROR, NOT_FOUND, VALIDATION_ERROR
from tasktamer.lib.exceptions import ConversationNotFoundError
from tasktamer.services.llm_client import HttpCompletionClient
from tasktamer.services.workspace import ConversationWorkspace

logger = logging.getLogger(__name__)


def create_app(
    workspace: ConversationWorkspace | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        workspace: Conversation workspace to serve; built from settings
            with an httpx completion client when omitted
        settings: Application settings; read from the environment when omitted

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()
    if workspace is None:
        workspace = ConversationWorkspace(
            HttpCompletionClient.from_settings(settings),
            settings=settings,
        )

    app = FastAPI(
        title="Task Tamer",
        description="Turns task descriptions into trackable checklists",
        version=__version__,
    )
    app.state.workspace = workspace

    # -------------------------------------------------------------------------
    # Exception handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(ConversationNotFoundError)
    async def not_found_handler(
        request: Request, exc: ConversationNotFoundError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=error_response(NOT_FOUND, str(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_response(
                VALIDATION_ERROR,
                details={"errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                    for err in exc.errors()
                ]},
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=error_response(INTERNAL_ERROR),
        )

    app.include_router(router)

    @app.get("/health")
    async def root_health_check() -> dict[str, str]:
        """Root health check for infrastructure probes."""
        return {"status": "ok"}

    return app


__all__ = ["create_app", "router"]
