# src/clippy_tasks/tasks/lifecycle.py

from __future__ import annotations

import logging
from dataclasses import replace

from ..core.errors import NotFoundError, PermissionDeniedError
from ..core.identity import CurrentUser, assignee_matches
from ..core.ports import TaskRepo
from .task_models import Task, TaskSource

logger = logging.getLogger(__name__)


def can_change_state(task: Task, actor: CurrentUser) -> bool:
    """
    Personal tasks: anyone who can see them. Team tasks: only the assignee,
    by the assignee-match rule. Team admins get no override.
    """
    if task.source is TaskSource.PERSONAL:
        return True
    return assignee_matches(task.assignee, actor.display_name)


class TaskLifecycleGuard:
    """
    Active <-> Completed state machine with per-assignee authorization.

    Both transitions are user-triggered; there is no terminal state. The
    permission check runs against the task as currently stored, not the
    caller's possibly stale copy. Repository failures propagate unretried.
    """

    def __init__(self, task_repo: TaskRepo) -> None:
        self._repo = task_repo

    async def request_toggle(
        self,
        task: Task | str,
        actor: CurrentUser,
        *,
        completed: bool | None = None,
    ) -> Task:
        """
        Move `task` to `completed` (or flip it when None).

        Returns the updated task; raises PermissionDeniedError naming the
        current assignee when the actor is not allowed.
        """
        task_id = task if isinstance(task, str) else task.id
        current = await self._repo.get(task_id)
        if current is None:
            raise NotFoundError(f"task {task_id} not found")

        target = (not current.completed) if completed is None else bool(completed)

        if not can_change_state(current, actor):
            logger.info(
                "Toggle denied task=%s actor=%s assignee=%r",
                current.id,
                actor.user_id,
                current.assignee,
            )
            raise PermissionDeniedError(
                f"only the assignee ({current.assignee}) can change this task's state",
                authorized=current.assignee,
            )

        if target == current.completed:
            return current

        await self._repo.update(current.id, {"completed": target})
        logger.info("Task %s -> %s by %s", current.id, "completed" if target else "active", actor.user_id)
        return replace(current, completed=target)
