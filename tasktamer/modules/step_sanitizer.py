"""
Step Sanitizer and Deduplication.

Cleans candidate step texts and folds duplicates:
1. Strip HTML-style tags
2. Strip wrapping quotes and backticks
3. Strip a leftover bullet / number / checkbox prefix
4. Collapse whitespace runs and trim
5. Drop steps that end up empty
6. Keep the first step per normalized key, then assign missing ids

All functions are pure: they return new Step objects and never touch
the `done` flag.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from tasktamer.core.models import Step

_TAG_RE = re.compile(r"<[^>]+>")
_WRAPPING_QUOTES_RE = re.compile(r"^[\"'`]+|[\"'`]+$")
_LEADING_PREFIX_RE = re.compile(r"^\s*(?:[-*]\s+|\d+[.)]\s+|\[(?: |x|X)\](?:\s+|$))")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_step_text(text: object) -> str:
    """Clean one candidate step text.

    Args:
        text: Raw candidate text (non-strings are stringified, None is empty)

    Returns:
        Sanitized text, possibly empty
    """
    cleaned = "" if text is None else str(text)
    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _WRAPPING_QUOTES_RE.sub("", cleaned)
    cleaned = _LEADING_PREFIX_RE.sub("", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def sanitize_steps(steps: Iterable[Step]) -> list[Step]:
    """Sanitize every step text and drop steps that become empty."""
    sanitized: list[Step] = []
    for step in steps:
        text = sanitize_step_text(step.text)
        if text:
            sanitized.append(Step(text=text, done=step.done, id=step.id))
    return sanitized


def dedupe_key(text: str) -> str:
    """Normalized comparison key: trimmed, whitespace-collapsed, lower-case."""
    return _WHITESPACE_RE.sub(" ", text.strip()).lower()


def dedupe_steps(steps: Iterable[Step]) -> list[Step]:
    """Keep the first step per normalized text, preserving order.

    Steps without an id get `step-<n>` from their position in the surviving
    list; upstream-supplied ids are kept, except that a repeated upstream id
    gets a `-<k>` suffix on every occurrence after the first. Ids in the
    result are unique and running this twice yields the same list.
    """
    seen: set[str] = set()
    survivors: list[Step] = []
    for step in steps:
        key = dedupe_key(step.text)
        if not key or key in seen:
            continue
        seen.add(key)
        survivors.append(step)

    taken = {step.id for step in survivors if step.id is not None}
    claimed: set[str] = set()
    result: list[Step] = []
    for position, step in enumerate(survivors, start=1):
        if step.id is None:
            step_id = _unique_id(f"step-{position}", taken)
        elif step.id in claimed:
            step_id = _unique_id(step.id, taken)
        else:
            step_id = step.id
        taken.add(step_id)
        claimed.add(step_id)
        result.append(Step(text=step.text, done=step.done, id=step_id))
    return result


def _unique_id(base: str, taken: set[str]) -> str:
    """First of base, base-2, base-3, ... not already taken."""
    step_id = base
    suffix = 1
    while step_id in taken:
        suffix += 1
        step_id = f"{base}-{suffix}"
    return step_id


def finalize_steps(steps: Iterable[Step]) -> list[Step]:
    """Sanitize then deduplicate; the form every checklist is stored in."""
    return dedupe_steps(sanitize_steps(steps))
