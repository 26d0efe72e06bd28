"""
Task Tamer -- Application Entry Point.

Starts the FastAPI server via uvicorn.

Usage:
    python main.py              # Development (reload when TASKTAMER_DEV_MODE=1)
    uvicorn main:app --host 0.0.0.0 --port 8000  # Production
"""

from __future__ import annotations

import os

import uvicorn

from tasktamer.api import create_app
from tasktamer.lib.logging import setup_logging

setup_logging()
app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("TASKTAMER_PORT", "8000"))
    host = os.getenv("TASKTAMER_HOST", "0.0.0.0")
    reload = os.getenv("TASKTAMER_DEV_MODE", "0") == "1"

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )
