# src/clippy_tasks/analysis/draft.py

"""
Draft parsing and validation.

Analyzer output is untrusted. It is turned into a DraftResult here, and a
draft that fails any check is rejected as a whole: nothing partial is ever
staged for review.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..core.errors import ValidationError
from ..tasks.task_models import DraftResult, DraftTask, Priority, is_valid_deadline, normalize_deadline

REQUIRED_TASK_FIELDS = ("description", "assignee", "priority", "department", "deadline")


def extract_json_object(raw: str) -> str:
    """Cut the outermost {...} out of a model reply (tolerates fences/preamble)."""
    raw = (raw or "").strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    raise ValidationError("no JSON object in analyzer output")


def _parse_task(i: int, item: Any) -> DraftTask:
    if not isinstance(item, Mapping):
        raise ValidationError(f"tasks[{i}] is not an object")
    missing = [f for f in REQUIRED_TASK_FIELDS if item.get(f) is None]
    if missing:
        raise ValidationError(f"tasks[{i}] is missing {', '.join(missing)}")

    description = str(item["description"]).strip()
    if not description:
        raise ValidationError(f"tasks[{i}].description is empty")

    try:
        priority = Priority.parse(item["priority"])
        deadline = normalize_deadline(item["deadline"])
    except ValidationError as exc:
        raise ValidationError(f"tasks[{i}]: {exc}") from exc

    return DraftTask(
        description=description,
        assignee=str(item["assignee"]).strip(),
        priority=priority,
        department=str(item["department"]).strip(),
        deadline=deadline,
    )


def _parse_decision(i: int, item: Any) -> str:
    if isinstance(item, str):
        text = item
    elif isinstance(item, Mapping) and item.get("description") is not None:
        text = str(item["description"])
    else:
        raise ValidationError(f"decisions[{i}] has no description")
    text = text.strip()
    if not text:
        raise ValidationError(f"decisions[{i}] is empty")
    return text


def parse_draft(payload: Mapping[str, Any]) -> DraftResult:
    """{summary, decisions[], tasks[]} mapping -> DraftResult, or ValidationError."""
    if not isinstance(payload, Mapping):
        raise ValidationError("draft must be a JSON object")
    for key in ("summary", "tasks", "decisions"):
        if key not in payload:
            raise ValidationError(f"draft is missing {key!r}")

    summary = payload["summary"]
    if not isinstance(summary, str):
        raise ValidationError("draft summary must be a string")
    tasks = payload["tasks"]
    decisions = payload["decisions"]
    if not isinstance(tasks, list) or not isinstance(decisions, list):
        raise ValidationError("draft tasks and decisions must be arrays")

    return DraftResult(
        summary=summary.strip(),
        decisions=tuple(_parse_decision(i, d) for i, d in enumerate(decisions)),
        tasks=tuple(_parse_task(i, t) for i, t in enumerate(tasks)),
    )


def parse_draft_json(raw: str) -> DraftResult:
    try:
        payload = json.loads(extract_json_object(raw))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"analyzer output is not valid JSON: {exc.msg}") from exc
    return parse_draft(payload)


def validate_draft(draft: DraftResult) -> None:
    """Re-check an already typed draft before staging it."""
    if not isinstance(draft.summary, str):
        raise ValidationError("draft summary must be a string")
    for i, task in enumerate(draft.tasks):
        if not task.description.strip():
            raise ValidationError(f"tasks[{i}].description is empty")
        if not isinstance(task.priority, Priority):
            raise ValidationError(f"tasks[{i}].priority is invalid")
        if not is_valid_deadline(task.deadline):
            raise ValidationError(f"tasks[{i}].deadline {task.deadline!r} is not in wire shape")
