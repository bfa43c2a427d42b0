# src/clippy_tasks/tasks/task_api.py

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from ..core.identity import CurrentUser
from ..core.ports import TaskRepo
from .review import ReviewContext
from .task_models import NO_DEADLINE, Priority, Task, TaskCreationCommand, TaskSource, normalize_deadline

logger = logging.getLogger(__name__)

MANUAL_SUMMARY = "Added manually."
DEPARTMENT_PERSONAL = "Personal"
DEPARTMENT_TEAM = "Team"


def build_deadline(day: str | None, at: str | None = None) -> str:
    """
    Manual-entry deadline: a date, optionally a time, or nothing.

    build_deadline("2025-03-01")          -> "2025-03-01"
    build_deadline("2025-03-01", "09:30") -> "2025-03-01 09:30"
    build_deadline(None)                  -> "no deadline"
    """
    day = (day or "").strip()
    if not day:
        return NO_DEADLINE
    at = (at or "").strip()
    return normalize_deadline(f"{day} {at}" if at else day)


async def create_manual_task(
    repo: TaskRepo,
    actor: CurrentUser,
    *,
    description: str,
    priority: Priority | str = Priority.MEDIUM,
    deadline: str = NO_DEADLINE,
    context: ReviewContext | None = None,
) -> Task:
    """Create one task typed in by the user; it is always owned by its creator."""
    context = context or ReviewContext(mode=TaskSource.PERSONAL)
    is_team = context.mode is TaskSource.TEAM
    command = TaskCreationCommand(
        description=description.strip(),
        assignee=actor.display_name,
        priority=priority if isinstance(priority, Priority) else Priority.parse(priority),
        department=DEPARTMENT_TEAM if is_team else DEPARTMENT_PERSONAL,
        deadline=normalize_deadline(deadline),
        source=context.mode,
        team_id=context.team_id,
        related_summary=MANUAL_SUMMARY,
    )
    task = await repo.create(command)
    logger.info("Manual task created id=%s source=%s team=%s", task.id, task.source.value, task.team_id)
    return task


async def edit_task(
    repo: TaskRepo,
    task_id: str,
    *,
    description: str | None = None,
    assignee: str | None = None,
    priority: Priority | str | None = None,
    department: str | None = None,
    deadline: str | None = None,
) -> Task:
    """Validate the given fields and merge-patch them; untouched fields stay as stored."""
    patch: dict[str, Any] = {}
    if description is not None:
        if not description.strip():
            raise ValidationError("task description is required")
        patch["description"] = description.strip()
    if assignee is not None:
        patch["assignee"] = assignee.strip()
    if priority is not None:
        patch["priority"] = (priority if isinstance(priority, Priority) else Priority.parse(priority)).value
    if department is not None:
        patch["department"] = department.strip()
    if deadline is not None:
        patch["deadline"] = normalize_deadline(deadline)

    await repo.update(task_id, patch)
    task = await repo.get(task_id)
    if task is None:
        raise NotFoundError(f"task {task_id} not found")
    return task


async def delete_task(repo: TaskRepo, task_id: str) -> None:
    await repo.delete(task_id)
    logger.info("Task deleted id=%s", task_id)
