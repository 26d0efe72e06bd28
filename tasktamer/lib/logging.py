"""
Structured logging configuration for Task Tamer.

structlog is layered over stdlib logging, so records from
`logging.getLogger()` (HTTP layer, uvicorn, httpx) and from
`structlog.get_logger()` (dialogue, extraction, motivation) share one
handler and one renderer.

Usage:
    from tasktamer.lib.logging import setup_logging

    setup_logging()  # Call once at application startup
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

# Loggers that chatter at INFO on every upstream request
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(level: str | None = None, dev_mode: bool | None = None) -> None:
    """
    Configure structlog and stdlib logging for the application.

    Args:
        level: Root log level name; defaults to LOG_LEVEL or INFO
        dev_mode: Console rendering when True, JSON when False;
            defaults to TASKTAMER_DEV_MODE=1
    """
    if dev_mode is None:
        dev_mode = os.environ.get("TASKTAMER_DEV_MODE") == "1"
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer()
        if dev_mode
        else structlog.processors.JSONRenderer(ensure_ascii=False)
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
