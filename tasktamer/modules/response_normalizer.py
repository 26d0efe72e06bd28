"""
Response Normalizer.

Reconciles a completion payload of unknown shape into display text plus an
optional checklist. Recognized text shapes, in order of preference:

    {"text": "..."}
    {"answer": "..."}
    {"choices": [{"message": {"content": "..."}}]}
    {"messages": [..., {"role": "assistant", "content": "..."}, ...]}

A non-empty explicit "steps" list wins over steps extracted from the
text. Whenever steps survive sanitization the display text is cleared;
the steps alone represent the message. A payload matching no shape is
shown as-is (stringified JSON when it is not already a string).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import structlog

from tasktamer.core.models import Step
from tasktamer.modules.checklist_extractor import extract_checklist
from tasktamer.modules.step_sanitizer import finalize_steps

logger = structlog.get_logger(__name__)

EMPTY_RESPONSE_TEXT = "(empty response)"


@dataclass
class NormalizedResponse:
    """Display text plus optional checklist.

    Attributes:
        text: Display text, empty when steps are present
        steps: Sanitized, deduplicated steps, or None
    """

    text: str
    steps: list[Step] | None = None

    @property
    def has_steps(self) -> bool:
        return bool(self.steps)


def resolve_text(payload: Any) -> str | None:
    """Pull the primary text out of a known payload shape.

    A string "text" or "answer" field wins even when empty; the caller
    then shows the whole payload.

    Returns:
        The text, or None when no known shape carries a string
    """
    if not isinstance(payload, dict):
        return None

    for key in ("text", "answer"):
        value = payload.get(key)
        if isinstance(value, str):
            return value

    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str) and content:
            return content

    messages = payload.get("messages")
    if isinstance(messages, list):
        for entry in messages:
            if isinstance(entry, dict) and entry.get("role") == "assistant":
                content = entry.get("content")
                return content if isinstance(content, str) and content else None

    return None


def normalize_explicit_steps(raw_steps: Any) -> list[Step]:
    """Coerce an explicit upstream step list into Step candidates.

    Items may be dicts ({"id", "text", "done"}) or bare values. Missing ids
    stay None so deduplication can assign them by final position.
    """
    if not isinstance(raw_steps, list):
        return []

    steps: list[Step] = []
    for item in raw_steps:
        if isinstance(item, dict):
            text = item.get("text")
            step_id = item.get("id")
            steps.append(
                Step(
                    text="" if text is None else str(text),
                    done=bool(item.get("done")),
                    id=str(step_id) if step_id is not None else None,
                )
            )
        else:
            steps.append(Step(text=str(item)))
    return steps


def stringify_payload(payload: Any) -> str:
    """Render an unrecognized payload as display text."""
    if payload is None or payload == "" or payload == {}:
        return EMPTY_RESPONSE_TEXT
    if isinstance(payload, str):
        return payload
    try:
        return json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(payload)


def normalize_response(
    payload: Any,
    extract_steps: bool = True,
    headings_as_steps: bool = False,
) -> NormalizedResponse:
    """Normalize a completion payload into display text and optional steps.

    Args:
        payload: Decoded completion body of unknown shape
        extract_steps: When False the reply is treated as plain chat: no
            explicit or extracted steps, text kept as-is
        headings_as_steps: Passed to the extractor for checklist replies

    Returns:
        NormalizedResponse
    """
    text = resolve_text(payload)
    steps: list[Step] = []

    if extract_steps:
        if isinstance(payload, dict):
            steps = finalize_steps(normalize_explicit_steps(payload.get("steps")))
        if not steps and text:
            extraction = extract_checklist(text, headings_as_steps=headings_as_steps)
            if extraction.found_steps:
                steps = finalize_steps(extraction.steps)

    if steps:
        logger.debug("response_normalized", steps=len(steps))
        return NormalizedResponse(text="", steps=steps)

    if text:
        return NormalizedResponse(text=text)

    logger.info("response_shape_unrecognized", payload_type=type(payload).__name__)
    return NormalizedResponse(text=stringify_payload(payload))
