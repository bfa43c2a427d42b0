# src/clippy_tasks/tasks/views.py

"""Read-only projections over task lists (my tasks, calendar, home)."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from ..core.identity import CurrentUser, assignee_matches, is_unassigned
from ..teams.team_models import Team
from .task_models import NO_DEADLINE, Priority, Task, TaskSource, deadline_date


class TaskView(StrEnum):
    ALL = "all"
    PERSONAL = "personal"
    TEAM = "team"


class DeadlineStatus(StrEnum):
    OVERDUE = "overdue"
    NEARING = "nearing"
    NORMAL = "normal"


@dataclass(frozen=True, slots=True)
class MyTasks:
    active: list[Task]
    completed: list[Task]


@dataclass(frozen=True, slots=True)
class TeamStat:
    team_id: str
    name: str
    active_count: int


def is_mine(task: Task, user: CurrentUser) -> bool:
    return assignee_matches(task.assignee, user.display_name) or is_unassigned(task.assignee)


def _deadline_key(task: Task) -> tuple[bool, str]:
    # "no deadline" sorts last in both directions.
    return (task.deadline == NO_DEADLINE, task.deadline)


def my_tasks(tasks: Iterable[Task], user: CurrentUser, view: TaskView = TaskView.ALL) -> MyTasks:
    """
    Personal tasks plus team tasks that are the user's (or nobody's).

    Active tasks: earliest deadline first. Completed: latest first.
    """
    picked: list[Task] = []
    for t in tasks:
        personal = t.source is TaskSource.PERSONAL
        mine_in_team = t.source is TaskSource.TEAM and is_mine(t, user)
        if view is TaskView.ALL and (personal or mine_in_team):
            picked.append(t)
        elif view is TaskView.PERSONAL and personal:
            picked.append(t)
        elif view is TaskView.TEAM and mine_in_team:
            picked.append(t)

    active = sorted((t for t in picked if not t.completed), key=_deadline_key)
    done = [t for t in picked if t.completed]
    dated = sorted((t for t in done if t.deadline != NO_DEADLINE), key=lambda t: t.deadline, reverse=True)
    undated = [t for t in done if t.deadline == NO_DEADLINE]
    return MyTasks(active=active, completed=dated + undated)


def tasks_by_date(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    """Calendar grouping by YYYY-MM-DD; sentinel and unparsable deadlines are skipped."""
    out: dict[str, list[Task]] = {}
    for t in tasks:
        d = deadline_date(t.deadline)
        if d is None:
            continue
        out.setdefault(d.isoformat(), []).append(t)
    return out


def deadline_status(task: Task, today: date | None = None, *, nearing_days: int = 2) -> DeadlineStatus:
    if task.completed:
        return DeadlineStatus.NORMAL
    d = deadline_date(task.deadline)
    if d is None:
        return DeadlineStatus.NORMAL
    days = (d - (today or date.today())).days
    if days < 0:
        return DeadlineStatus.OVERDUE
    if days <= nearing_days:
        return DeadlineStatus.NEARING
    return DeadlineStatus.NORMAL


def focus_task(tasks: Sequence[Task]) -> Task | None:
    """First active High task, else first active Medium, else first active."""
    active = [t for t in tasks if not t.completed]
    for p in (Priority.HIGH, Priority.MEDIUM):
        for t in active:
            if t.priority is p:
                return t
    return active[0] if active else None


def team_stats(teams: Iterable[Team], tasks: Sequence[Task]) -> list[TeamStat]:
    stats = [
        TeamStat(
            team_id=team.id,
            name=team.name,
            active_count=sum(1 for t in tasks if t.team_id == team.id and not t.completed),
        )
        for team in teams
    ]
    stats.sort(key=lambda s: s.active_count, reverse=True)
    return stats
