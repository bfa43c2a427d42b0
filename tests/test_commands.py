# tests/test_commands.py

from __future__ import annotations

import pytest

from clippy_tasks.cli.commands import CommandRegistry, registry
from clippy_tasks.connectors.console_connector import format_error
from clippy_tasks.core.errors import CascadeDeleteError, PermissionDeniedError, ValidationError
from clippy_tasks.core.state import AppState


async def run(state: AppState, line: str) -> str:
    reply = await registry.handle(state, line)
    assert reply is not None
    return reply


async def login(state: AppState, username: str, display_name: str) -> str:
    """Log in (registering on first use); returns the invitation code."""
    reply = await run(state, f"/login {username} {display_name}")
    return reply.split()[-1]


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    async def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(state, "/a x y") == "h2:x,y"
    assert await reg.handle(state, "/AA") == "h2:"
    assert await reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]
    assert "/a - a" in reg.build_help()


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_commands_require_login(state: AppState) -> None:
    with pytest.raises(PermissionDeniedError):
        await run(state, "/tasks")
    assert "Not logged in" in await run(state, "/whoami")
    assert "Register with" in await run(state, "/login ghost")


@pytest.mark.asyncio
async def test_personal_note_review_and_toggle(state: AppState) -> None:
    await login(state, "kim", "Kim")

    review = await run(state, "/note Buy milk | Call the bank | Decision: weekly sync on Monday")
    assert "1. [x] Buy milk" in review
    assert "weekly sync on Monday" in review

    assert "2. [ ] Call the bank" in await run(state, "/deselect 2")
    assert await run(state, "/confirm") == "Created 1 task(s)."
    with pytest.raises(ValidationError):
        await run(state, "/confirm")

    (task,) = await state.task_store.list()
    assert (task.assignee, task.description) == ("Kim", "Buy milk")
    assert "Buy milk" in await run(state, "/tasks")
    assert "weekly sync on Monday" in await run(state, "/decisions")

    assert (await run(state, f"/toggle {task.id[:6]}")).startswith("Completed")
    assert (await state.task_store.get(task.id)).completed is True


@pytest.mark.asyncio
async def test_manual_add_edit_delete_and_calendar(state: AppState) -> None:
    await login(state, "kim", "Kim")

    assert (await run(state, "/add Renew passport :: high :: 2030-05-02 10:00")).startswith("Added")
    (task,) = await state.task_store.list()
    assert (task.priority.value, task.deadline) == ("High", "2030-05-02 10:00")

    assert "Renew passport" in await run(state, "/calendar 2030-05")
    assert "No dated tasks" in await run(state, "/calendar 2030-06")

    await run(state, f"/edit {task.id[:8]} description Renew passport and ID")
    assert (await state.task_store.get(task.id)).description == "Renew passport and ID"

    await run(state, f"/delete {task.id[:8]}")
    assert await state.task_store.list() == []


@pytest.mark.asyncio
async def test_team_flow_with_permissions(state: AppState) -> None:
    lee_code = await login(state, "lee", "Lee")
    await login(state, "kim", "Kim")

    await run(state, "/team new Growth")
    (team,) = await state.team_store.list()
    assert await run(state, f"/team join {team.id[:8]} {lee_code}") == "Member added."
    assert await run(state, f"/team join {team.id[:8]} {lee_code}") == "Already a member."

    review = await run(state, f"/note {team.id[:8]} :: Prepare slides")
    assert "Team: Kim, Lee" in review
    with pytest.raises(ValidationError):
        await run(state, "/assign 1 Park")
    await run(state, "/assign 1 Lee")
    await run(state, "/confirm")

    (task,) = await state.task_store.list()
    assert (task.assignee, task.team_id) == ("Lee", team.id)

    with pytest.raises(PermissionDeniedError):
        await run(state, f"/toggle {task.id[:8]}")
    await run(state, f"/team post {team.id[:8]} Standup at 10")
    assert "Growth (owner)" in await run(state, "/teams")

    await login(state, "lee", "")
    with pytest.raises(PermissionDeniedError):
        await run(state, f"/team delete {team.id[:8]}")
    assert (await run(state, f"/toggle {task.id[:8]}")).startswith("Completed")
    assert "Standup at 10" in await run(state, f"/team show {team.id[:8]}")

    await login(state, "kim", "")
    await run(state, f"/team delete {team.id[:8]}")
    assert await state.team_store.list() == []
    assert await state.task_store.list() == []
    assert await state.announcement_store.list() == []


@pytest.mark.asyncio
async def test_rename_propagates(state: AppState) -> None:
    await login(state, "kim", "Kim")
    await run(state, "/team new Growth")
    await run(state, "/add Write minutes")

    reply = await run(state, "/rename Kim2")

    assert "1 task(s), 1 team(s)" in reply
    assert state.identity.current_user().display_name == "Kim2"
    (team,) = await state.team_store.list()
    assert team.members == ["Kim2 (Admin)"]
    assert "Kim2" in await run(state, "/whoami")


@pytest.mark.asyncio
async def test_repair_reports_orphans(state: AppState) -> None:
    await login(state, "kim", "Kim")
    await state.announcement_store.create(team_id="gone", content="x", created_at="2025-01-01", author="Kim")

    assert "1 orphaned announcement" in await run(state, "/repair")
    assert await run(state, "/repair") == "Nothing to repair."


def test_format_error() -> None:
    denied = format_error(PermissionDeniedError("only the assignee can change it", authorized="Kim (Admin)"))
    assert "Ask: Kim (Admin)" in denied

    partial = format_error(CascadeDeleteError("team t", completed=["tasks"], failed=["announcements", "team"]))
    assert "Failed: announcements, team" in partial
    assert "/repair" in partial


@pytest.mark.asyncio
async def test_team_leave_and_join_need_membership(state: AppState) -> None:
    park_code = await login(state, "park", "Park")
    await login(state, "lee", "Lee")
    await login(state, "kim", "Kim")
    await run(state, "/team new Growth")
    (team,) = await state.team_store.list()
    await run(state, f"/add Book room :: high :: 2030-05-02 :: {team.id[:8]}")
    await run(state, f"/team post {team.id[:8]} Standup at 10")

    await login(state, "lee", "")
    with pytest.raises(PermissionDeniedError):
        await run(state, f"/team leave {team.id[:8]}")
    with pytest.raises(PermissionDeniedError):
        await run(state, f"/team join {team.id[:8]} {park_code}")

    assert (await state.team_store.get(team.id)).members == ["Kim (Admin)"]
    assert len(await state.announcement_store.list(team.id)) == 1
    assert len(await state.task_store.list()) == 1


@pytest.mark.asyncio
async def test_account_delete_logs_out_and_frees_username(state: AppState) -> None:
    code = await login(state, "kim", "Kim")
    await run(state, "/add Write minutes")

    assert (await run(state, "/account delete lee")).startswith("Type your own username")
    assert await run(state, "/account delete kim") == "Account deleted. You are logged out."

    assert not state.identity.logged_in
    assert await state.user_store.get("kim") is None
    assert await state.user_store.resolve_invite_code(code) is None
    (task,) = await state.task_store.list()
    assert task.assignee == "Kim"
    with pytest.raises(PermissionDeniedError):
        await run(state, "/tasks")
    assert (await run(state, "/login kim")).startswith("No user 'kim' yet")
