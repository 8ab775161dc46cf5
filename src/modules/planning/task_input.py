"""Task input parsing and normalisation."""

import re

from pydantic import BaseModel, Field

from src.core.config import Constants
from src.domain.plan import Plan


_LIST_PREFIX = re.compile(r"^(?:[-*•]|\d+[.)])\s*")


class PlanTaskInput(BaseModel):
    """A task to be inserted into a plan."""

    text: str
    area_id: str | None = None
    carried_from_task_id: str | None = Field(default=None, description="Source task when carried over")


def clean_task_text(text: str) -> str:
    """Trim a task text and cap it at the maximum length."""
    return text.strip()[: Constants.MAX_TASK_TEXT_LENGTH]


def normalize_task_inputs(tasks: list[PlanTaskInput]) -> list[PlanTaskInput]:
    """Clean task texts and drop blank entries, preserving order.

    Does not apply the per-day cap; the store truncates against the plan's
    remaining capacity.
    """
    normalized = []
    for task in tasks:
        text = clean_task_text(task.text)
        if not text:
            continue
        normalized.append(task.model_copy(update={"text": text}))
    return normalized


def parse_tasks_from_message(message: str) -> list[str]:
    """Split a chat message into task texts.

    Accepts a single task or a multi-line list; bullet (``-``, ``*``, ``•``) and
    numbering (``1.``, ``1)``) prefixes are stripped.
    """
    texts = []
    for raw_line in message.split("\n"):
        line = _LIST_PREFIX.sub("", raw_line.strip()).strip()
        if line:
            texts.append(line[: Constants.MAX_TASK_TEXT_LENGTH])
    return texts


def inputs_from_texts(texts: list[str], *, area_id: str | None = None) -> list[PlanTaskInput]:
    """Wrap plain task texts as plan inputs."""
    return [PlanTaskInput(text=text, area_id=area_id) for text in texts]


def is_filled_plan(plan: Plan | None) -> bool:
    """True when the plan exists, is committed, and has at least one task."""
    return plan is not None and plan.is_filled
