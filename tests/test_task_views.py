# tests/test_task_views.py

from __future__ import annotations

from datetime import date

import pytest

from clippy_tasks.core.errors import ValidationError
from clippy_tasks.core.identity import CurrentUser
from clippy_tasks.tasks import task_api
from clippy_tasks.tasks.review import ReviewContext
from clippy_tasks.tasks.task_models import NO_DEADLINE, Priority, TaskSource
from clippy_tasks.tasks.views import (
    DeadlineStatus,
    TaskView,
    deadline_status,
    focus_task,
    my_tasks,
    tasks_by_date,
    team_stats,
)
from clippy_tasks.teams.team_models import Team

from .fakes import InMemoryTaskRepo, make_task


def test_my_tasks_filters_and_sorts(kim: CurrentUser) -> None:
    late = make_task(description="late", assignee="Kim", deadline="2025-03-09")
    early = make_task(description="early", assignee="kim (Admin)", deadline="2025-03-01 09:00")
    undated = make_task(description="undated", assignee="Unassigned")
    theirs = make_task(description="theirs", assignee="Lee")
    personal = make_task(description="personal", source=TaskSource.PERSONAL, deadline="2025-03-05")
    done_old = make_task(description="done-old", assignee="me", completed=True, deadline="2025-01-01")
    done_new = make_task(description="done-new", assignee="me", completed=True, deadline="2025-02-01")
    done_none = make_task(description="done-none", assignee="me", completed=True)
    tasks = [late, early, undated, theirs, personal, done_none, done_old, done_new]

    mine = my_tasks(tasks, kim)
    assert [t.description for t in mine.active] == ["early", "personal", "late", "undated"]
    assert [t.description for t in mine.completed] == ["done-new", "done-old", "done-none"]

    assert [t.description for t in my_tasks(tasks, kim, TaskView.PERSONAL).active] == ["personal"]
    assert "personal" not in [t.description for t in my_tasks(tasks, kim, TaskView.TEAM).active]


def test_tasks_by_date_skips_sentinel() -> None:
    a = make_task(deadline="2025-03-01 09:00")
    b = make_task(deadline="2025-03-01")
    c = make_task(deadline=NO_DEADLINE)

    grouped = tasks_by_date([a, b, c])

    assert list(grouped) == ["2025-03-01"]
    assert grouped["2025-03-01"] == [a, b]


def test_deadline_status() -> None:
    today = date(2025, 3, 10)
    assert deadline_status(make_task(deadline="2025-03-09"), today) is DeadlineStatus.OVERDUE
    assert deadline_status(make_task(deadline="2025-03-12 18:00"), today) is DeadlineStatus.NEARING
    assert deadline_status(make_task(deadline="2025-03-13"), today) is DeadlineStatus.NORMAL
    assert deadline_status(make_task(deadline="2025-03-01", completed=True), today) is DeadlineStatus.NORMAL
    assert deadline_status(make_task(), today) is DeadlineStatus.NORMAL


def test_focus_task_prefers_high_then_medium() -> None:
    low = make_task(priority=Priority.LOW)
    medium = make_task(priority=Priority.MEDIUM)
    high_done = make_task(priority=Priority.HIGH, completed=True)
    high = make_task(priority=Priority.HIGH)

    assert focus_task([low, medium, high_done, high]) is high
    assert focus_task([low, medium]) is medium
    assert focus_task([low]) is low
    assert focus_task([high_done]) is None


def test_team_stats_busiest_first() -> None:
    a = Team(id="A", name="Alpha", members=["Kim (Admin)"], created_by="u-kim")
    b = Team(id="B", name="Beta", members=["Lee (Admin)"], created_by="u-lee")
    tasks = [make_task(team_id="B"), make_task(team_id="B"), make_task(team_id="A", completed=True)]

    stats = team_stats([a, b], tasks)

    assert [(s.name, s.active_count) for s in stats] == [("Beta", 2), ("Alpha", 0)]


def test_build_deadline() -> None:
    assert task_api.build_deadline("2025-03-01") == "2025-03-01"
    assert task_api.build_deadline("2025-03-01", "09:30") == "2025-03-01 09:30"
    assert task_api.build_deadline(None) == NO_DEADLINE
    with pytest.raises(ValidationError):
        task_api.build_deadline("2025-03-01", "9am")


@pytest.mark.asyncio
async def test_manual_create_edit_delete(task_repo: InMemoryTaskRepo, kim: CurrentUser) -> None:
    personal = await task_api.create_manual_task(task_repo, kim, description=" Buy milk ", priority="low")
    team = await task_api.create_manual_task(
        task_repo,
        kim,
        description="Fix CI",
        deadline="2025-03-01 09:00",
        context=ReviewContext(mode=TaskSource.TEAM, team_id="team-1"),
    )

    assert (personal.assignee, personal.department, personal.priority) == ("Kim", "Personal", Priority.LOW)
    assert personal.related_summary == task_api.MANUAL_SUMMARY
    assert (team.team_id, team.department) == ("team-1", "Team")

    edited = await task_api.edit_task(task_repo, personal.id, priority="High", deadline="2025-04-01T08:00")
    assert (edited.priority, edited.deadline, edited.description) == (Priority.HIGH, "2025-04-01 08:00", "Buy milk")
    with pytest.raises(ValidationError):
        await task_api.edit_task(task_repo, personal.id, description="  ")

    await task_api.delete_task(task_repo, personal.id)
    assert [t.id for t in await task_repo.list()] == [team.id]
