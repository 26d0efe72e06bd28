"""
Checklist Extractor.

Recovers candidate checklist steps from free-form completion text. The
upstream model is asked for a checklist but its output format is not
guaranteed, so a fixed set of list idioms is recognized line by line.

Line classification, first match wins:
1. Table row with a checkbox cell   | ☐ | Wash the car | 3 |
2. Checkbox bullet                  - [ ] text / * [x] text
3. Plain bullet                     - text / * text
4. Numbered item                    1. text / 1) text
5. Level-3 heading                  ### text (a step only when enabled)
6. Anything else is residual prose

Bullets and numbered items that look like section headers ("Notes:",
"Good examples ...") are consumed without becoming steps. Blank lines are
dropped before classification.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from tasktamer.core.models import Step
from tasktamer.modules.step_sanitizer import sanitize_step_text

logger = structlog.get_logger(__name__)

_TABLE_ROW_RE = re.compile(r"^\s*\|(.+)\|\s*$")
_CHECKBOX_BULLET_RE = re.compile(r"^\s*[-*]\s+\[( |x|X)\]\s+(.*)$")
_BULLET_RE = re.compile(r"^\s*[-*]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_HEADING_RE = re.compile(r"^\s*#{3}\s+(.*)$")

_UNCHECKED_CELL_RE = re.compile(r"^(?:☐|\[ \])$")
_CHECKED_CELL_RE = re.compile(r"^(?:☑|\[[xX]\])$")
_NUMERIC_CELL_RE = re.compile(r"^\d+$")

_SECTION_HEADER_RE = re.compile(
    r"^(?:good examples|bad examples|requirements|notes|context)\b",
    re.IGNORECASE,
)


@dataclass
class ExtractionResult:
    """Candidate steps plus the prose left after removing list lines.

    Attributes:
        steps: Candidate steps in document order (not yet sanitized)
        residual_text: Unrecognized lines joined with newlines, trimmed
    """

    steps: list[Step] = field(default_factory=list)
    residual_text: str = ""

    @property
    def found_steps(self) -> bool:
        return len(self.steps) > 0


def is_section_header(content: str) -> bool:
    """True for list items that label a section rather than name a step."""
    return content.endswith(":") or bool(_SECTION_HEADER_RE.match(content))


def parse_table_row(line: str) -> Step | None | bool:
    """Classify a markdown table row.

    Returns:
        A Step when the row has a checkbox cell and a usable text cell,
        True when the row has a checkbox cell but no usable text (consumed),
        None when the line is not a checklist table row
    """
    match = _TABLE_ROW_RE.match(line)
    if not match:
        return None

    cells = [cell.strip() for cell in line.strip().split("|")]
    cells = [cell for cell in cells if cell]
    if not cells:
        return None

    has_unchecked = any(_UNCHECKED_CELL_RE.match(cell) for cell in cells)
    has_checked = any(_CHECKED_CELL_RE.match(cell) for cell in cells)
    if not (has_unchecked or has_checked):
        return None

    text_cells = [
        cell for cell in cells
        if not _UNCHECKED_CELL_RE.match(cell)
        and not _CHECKED_CELL_RE.match(cell)
        and not _NUMERIC_CELL_RE.match(cell)
    ]
    if not text_cells:
        return True

    # Longest cell wins; max() keeps the first on ties
    text = max(text_cells, key=len)
    return Step(text=text, done=has_checked)


def _classify_line(line: str, headings_as_steps: bool) -> Step | None | bool:
    """Classify one non-blank line.

    Returns:
        Step for a step line, True for a consumed non-step line,
        None for residual prose
    """
    table_step = parse_table_row(line)
    if table_step is not None:
        return table_step

    match = _CHECKBOX_BULLET_RE.match(line)
    if match:
        return Step(text=match.group(2).strip(), done=match.group(1).lower() == "x")

    for pattern in (_BULLET_RE, _NUMBERED_RE):
        match = pattern.match(line)
        if match:
            content = match.group(1).strip()
            if is_section_header(content):
                return True
            return Step(text=content)

    match = _HEADING_RE.match(line)
    if match:
        if headings_as_steps:
            return Step(text=match.group(1).strip())
        return True

    return None


def extract_checklist(text: str, headings_as_steps: bool = False) -> ExtractionResult:
    """Scan text top to bottom and collect candidate steps.

    Args:
        text: Raw multi-line completion text
        headings_as_steps: Treat `### heading` lines as steps (checklist
            generation replies); otherwise headings are dropped

    Returns:
        ExtractionResult with candidate steps and residual prose
    """
    steps: list[Step] = []
    residual: list[str] = []

    for line in str(text).splitlines():
        if not line.strip():
            continue
        outcome = _classify_line(line, headings_as_steps)
        if isinstance(outcome, Step):
            # A step line whose text cleans to nothing is consumed, not emitted
            if sanitize_step_text(outcome.text):
                steps.append(outcome)
        elif outcome is None:
            residual.append(line)

    logger.debug(
        "checklist_extracted",
        steps=len(steps),
        residual_lines=len(residual),
        headings_as_steps=headings_as_steps,
    )
    return ExtractionResult(steps=steps, residual_text="\n".join(residual).strip())
