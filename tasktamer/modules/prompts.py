"""
Prompt templates for upstream requests.

The wording matters less than the shape of the reply it provokes:
breakdown and refinement prompts ask for a checkbox list the extractor
understands; motivation prompts ask for a single short line.
"""

from __future__ import annotations

BREAKDOWN_PROMPT = """Break this task into smaller subtasks with progress tracking.

Task: "{task}"

Reply with a checklist only, one subtask per line, formatted as "- [ ] subtask".
Keep each subtask short and actionable. Do not add commentary."""

REFINEMENT_PROMPT = """Update the checklist for the task "{task}" using this new detail:

{detail}

Reply with the complete updated checklist only, one subtask per line,
formatted as "- [ ] subtask" (keep "- [x]" for subtasks already done)."""

VICTORY_PROMPT = """Generate ONE bold, brag-worthy victory line for: "{task}"

Progress: {completed}/{total} completed ({percent}%)
Stage: {stage}

Requirements:
- Maximum 45 characters
- Include exactly ONE emoji (victory/celebration or task-related)
- Sound triumphant and proud; celebrate the user
- Avoid generic phrases like "keep going" or "great job"
- Be specific to the task or outcome
- Natural, not corporate

Generate ONE message:"""

PROGRESS_PROMPT = """Generate ONE fresh, creative motivational message for: "{task}"

Progress: {completed}/{total} completed ({percent}%)
Stage: {stage}

Requirements:
- Maximum 45 characters
- Include exactly ONE emoji (related to the actual task)
- Avoid generic phrases like "keep going", "great job", "you got this"
- Be specific to what they're actually doing
- Sound natural and authentic, not corporate
- Be encouraging but not overly enthusiastic

Generate ONE specific motivational message:"""


def build_breakdown_prompt(task: str) -> str:
    return BREAKDOWN_PROMPT.format(task=task)


def build_refinement_prompt(task: str, detail: str) -> str:
    return REFINEMENT_PROMPT.format(task=task, detail=detail)


def build_motivation_prompt(
    task: str,
    completed: int,
    total: int,
    percent: int,
    stage: str,
) -> str:
    """Victory prompt at 100%, stage-tailored progress prompt otherwise."""
    template = VICTORY_PROMPT if percent == 100 else PROGRESS_PROMPT
    return template.format(
        task=task,
        completed=completed,
        total=total,
        percent=percent,
        stage=stage,
    )
