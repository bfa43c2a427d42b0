# tests/test_profile.py

from __future__ import annotations

import pytest

from clippy_tasks.core.errors import ValidationError
from clippy_tasks.tasks.task_models import TaskSource
from clippy_tasks.teams.team_models import Team
from clippy_tasks.users.profile import ProfilePropagation
from clippy_tasks.users.user_store import UserStore

from .fakes import InMemoryAnnouncementRepo, InMemoryTaskRepo, InMemoryTeamRepo, make_task


@pytest.mark.asyncio
async def test_rename_rewrites_exact_matches_only(announcement_repo: InMemoryAnnouncementRepo) -> None:
    plain = make_task(assignee="Kim")
    admin = make_task(assignee="Kim (Admin)")
    collision = make_task(assignee="Kim Min-su")
    personal = make_task(assignee="Kim", source=TaskSource.PERSONAL)
    tasks = InMemoryTaskRepo([plain, admin, collision, personal])
    teams = InMemoryTeamRepo(
        [
            Team(id="t1", name="A", members=["Kim (Admin)", "Lee"], created_by="u-kim"),
            Team(id="t2", name="B", members=["Lee (Admin)", "Kim Min-su"], created_by="u-lee"),
        ]
    )
    mine = await announcement_repo.create(team_id="t1", content="hi", created_at="2025-01-01", author="Kim")
    theirs = await announcement_repo.create(team_id="t1", content="yo", created_at="2025-01-01", author="Kim Min-su")

    report = await ProfilePropagation(tasks, teams, announcement_repo).rename_user("Kim", "Kim2")

    assert (await tasks.get(plain.id)).assignee == "Kim2"
    assert (await tasks.get(admin.id)).assignee == "Kim2 (Admin)"
    assert (await tasks.get(personal.id)).assignee == "Kim2"
    assert (await tasks.get(collision.id)).assignee == "Kim Min-su"
    assert (await teams.get("t1")).members == ["Kim2 (Admin)", "Lee"]
    assert (await teams.get("t2")).members == ["Lee (Admin)", "Kim Min-su"]
    assert announcement_repo.items[mine.id].author == "Kim2"
    assert announcement_repo.items[theirs.id].author == "Kim Min-su"
    assert (report.tasks, report.teams, report.announcements) == (3, 1, 1)


@pytest.mark.asyncio
async def test_rename_updates_directory_record(
    user_store: UserStore,
    task_repo: InMemoryTaskRepo,
    team_repo: InMemoryTeamRepo,
    announcement_repo: InMemoryAnnouncementRepo,
) -> None:
    user = await user_store.register("kim", "Kim")
    profile = ProfilePropagation(task_repo, team_repo, announcement_repo, user_store)

    await profile.rename_user("Kim", "Kim2", actor=user.as_current())

    assert (await user_store.get("kim")).display_name == "Kim2"
    assert await user_store.resolve_invite_code(user.invitation_code) == "Kim2"


@pytest.mark.asyncio
async def test_rename_validation(
    task_repo: InMemoryTaskRepo,
    team_repo: InMemoryTeamRepo,
    announcement_repo: InMemoryAnnouncementRepo,
) -> None:
    profile = ProfilePropagation(task_repo, team_repo, announcement_repo)

    with pytest.raises(ValidationError):
        await profile.rename_user("Kim", "  ")
    with pytest.raises(ValidationError):
        await profile.rename_user("Kim", "Kim (Admin)")
    assert (await profile.rename_user("Kim", "Kim")).tasks == 0
