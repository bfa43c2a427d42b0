# src/clippy_tasks/cli/commands.py

from __future__ import annotations

import base64
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import cast

from ..core.errors import NotFoundError, PermissionDeniedError, ValidationError
from ..core.identity import CurrentUser
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.review import ReviewContext, ReviewSession
from ..tasks.task_models import NO_DEADLINE, Task, TaskFilter, TaskSource
from ..tasks.views import DeadlineStatus, TaskView, deadline_status, focus_task, my_tasks, tasks_by_date, team_stats
from ..teams.membership import is_team_owner
from ..teams.team_models import Team

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_AUDIO_MIME = {".wav": "audio/wav", ".mp3": "audio/mpeg"}
_TEAM_TASKS = TaskFilter(source=TaskSource.TEAM)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors propagate; the connector decides how to show them.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Quit.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _short(record_id: str) -> str:
    return record_id[:8]


def _current(state: AppState) -> CurrentUser:
    return state.identity.current_user()


def _resolve_by_prefix(items: list, prefix: str, kind: str):
    prefix = prefix.strip().lower()
    if not prefix:
        raise ValidationError(f"{kind} id is required")
    hits = [it for it in items if it.id.lower().startswith(prefix)]
    if not hits:
        raise NotFoundError(f"no {kind} with id starting with {prefix!r}")
    if len(hits) > 1:
        raise ValidationError(f"{kind} id {prefix!r} is ambiguous ({len(hits)} matches)")
    return hits[0]


async def _resolve_task(state: AppState, prefix: str) -> Task:
    return _resolve_by_prefix(await state.task_store.list(), prefix, "task")


async def _resolve_team(state: AppState, prefix: str) -> Team:
    return _resolve_by_prefix(await state.team_store.list(), prefix, "team")


async def _member_team(state: AppState, prefix: str) -> Team:
    team = await _resolve_team(state, prefix)
    user = _current(state)
    if not team.has_member(user.display_name):
        raise PermissionDeniedError(f"you are not a member of team {team.name!r}")
    return team


def _status_mark(state: AppState, task: Task, today: date) -> str:
    status = deadline_status(task, today, nearing_days=state.settings.deadline_nearing_days)
    if status is DeadlineStatus.OVERDUE:
        return " (overdue)"
    if status is DeadlineStatus.NEARING:
        return " (due soon)"
    return ""


def format_task(state: AppState, task: Task, today: date | None = None) -> str:
    today = today or date.today()
    box = "[x]" if task.completed else "[ ]"
    where = f" team:{_short(task.team_id)}" if task.team_id else ""
    return (
        f"{box} {_short(task.id)} {task.priority.value:<6} {task.deadline:<16} "
        f"{task.description} (@{task.assignee}){where}{_status_mark(state, task, today)}"
    )


def render_review(session: ReviewSession) -> str:
    ctx = session.context
    mode = f"team {_short(ctx.team_id)}" if ctx.team_id else "personal"
    lines = [f"Review ({mode}):", f"  Summary: {session.draft.summary}"]
    if session.draft.decisions:
        lines.append("  Decisions:")
        lines.extend(f"    - {d}" for d in session.draft.decisions)
    if not session.tasks:
        lines.append("  No tasks found.")
    for i, st in enumerate(session.tasks, start=1):
        mark = "[x]" if st.key in session.selected else "[ ]"
        d = st.draft
        lines.append(
            f"  {i}. {mark} {d.description} (@{st.assignee}, {d.priority.value}, {d.deadline}, {d.department})"
        )
    if session.team_roster:
        lines.append(f"  Team: {', '.join(session.team_roster)}")
    lines.append("Use /select, /deselect, /assign, then /confirm or /cancel.")
    return "\n".join(lines)


def _open_review(state: AppState) -> ReviewSession:
    session = state.review
    if session is None or not session.is_open:
        raise ValidationError("no review in progress; use /analyze or /note first")
    return session


def _review_keys(session: ReviewSession, args: list[str]) -> list[str]:
    if not args:
        raise ValidationError("give one or more task numbers, or 'all'")
    if len(args) == 1 and args[0].lower() == "all":
        return [st.key for st in session.tasks]
    keys = []
    for a in args:
        try:
            keys.append(session.key_at(int(a)))
        except ValueError:
            raise ValidationError(f"not a task number: {a!r}") from None
    return keys


async def _stage(
    state: AppState,
    content: str,
    *,
    mime_type: str | None = None,
    team_prefix: str | None = None,
    emit: CommandEmitter | None = None,
) -> str:
    _current(state)
    roster: list[str] = []
    context = ReviewContext(mode=TaskSource.PERSONAL)
    if team_prefix:
        team = await _member_team(state, team_prefix)
        roster = team.member_names()
        context = ReviewContext(mode=TaskSource.TEAM, team_id=team.id)

    if emit:
        emit("[ANALYZE] Working... (this may take a while)")

    draft = await state.analyzer.analyze(content, mime_type=mime_type, team_roster=roster or None)
    if state.review is not None:
        state.curator.cancel(state.review)
    state.review = state.curator.stage(draft, context, team_roster=roster)
    return render_review(state.review)


# ---- general ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    who = state.identity.user.display_name if state.identity.user else "(not logged in)"
    analyzer = "offline demo" if state.offline else "LLM"
    models = ", ".join(list(getattr(s, "llm_models", []) or []))
    review = "open" if state.review is not None and state.review.is_open else "none"
    return (
        "Status:\n"
        f"  User: {who}\n"
        f"  Analyzer: {analyzer}\n"
        f"  Models (priority -> fallback): {models}\n"
        f"  Review: {review}\n"
        f"  Data: {s.data_dir}"
    )


async def cmd_login(state: AppState, args: list[str]) -> str:
    """
    /login <username>                 -> log in as an existing user
    /login <username> <display name>  -> register a new user
    """
    if not args:
        return "Usage: /login <username> [display name]"
    username = args[0]
    display_name = " ".join(args[1:]).strip()

    user = await state.user_store.get(username)
    if user is None:
        if not display_name:
            return f"No user {username!r} yet. Register with: /login {username} <display name>"
        user = await state.user_store.register(username, display_name)
    elif display_name and display_name != user.display_name:
        return f"User {username!r} is called {user.display_name!r}. Use /rename after logging in."

    if state.review is not None:
        state.curator.cancel(state.review)
        state.review = None
    state.identity.user = user
    logger.info("Session login username=%s", username)
    return f"Logged in as {user.display_name}. Your invitation code: {user.invitation_code}"


async def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = state.identity.user
    if user is None:
        return "Not logged in."
    return f"{user.display_name} (username {user.username}, invitation code {user.invitation_code})"


async def cmd_account(state: AppState, args: list[str]) -> str:
    """
    /account delete <username>
    Removes your directory record and logs you out. Tasks, rosters and
    announcements keep your display name.
    """
    usage = "Usage: /account delete <your username>"
    if len(args) != 2 or args[0].lower() != "delete":
        return usage
    user = _current(state)
    if args[1] != user.user_id:
        return f"Type your own username to confirm: /account delete {user.user_id}"

    await state.user_store.delete(user.user_id)
    if state.review is not None:
        state.curator.cancel(state.review)
        state.review = None
    state.identity.user = None
    logger.info("Account deleted username=%s", user.user_id)
    return "Account deleted. You are logged out."


# ---- analysis + review ----


async def cmd_analyze(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /analyze <file> [team_id]
    Text files are analyzed as a transcript, .wav/.mp3 as a recording.
    """
    if not args:
        return "Usage: /analyze <file> [team_id]"
    path = Path(args[0]).expanduser()
    if not path.is_file():
        raise NotFoundError(f"file not found: {path}")

    mime = _AUDIO_MIME.get(path.suffix.lower())
    if mime:
        content = base64.b64encode(path.read_bytes()).decode("ascii")
    else:
        content = path.read_text("utf-8")
    return await _stage(state, content, mime_type=mime, team_prefix=args[1] if len(args) > 1 else None, emit=emit)


async def cmd_note(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /note <text>               -> analyze a personal note
    /note <team_id> :: <text>  -> analyze a team meeting note
    Use " | " to separate lines.
    """
    text = " ".join(args)
    team_prefix = None
    if "::" in text:
        head, text = text.split("::", 1)
        team_prefix = head.strip() or None
    body = "\n".join(part.strip() for part in text.split("|") if part.strip())
    if not body:
        return "Usage: /note [team_id ::] <text>"
    return await _stage(state, body, team_prefix=team_prefix, emit=emit)


async def cmd_review(state: AppState, args: list[str]) -> str:
    return render_review(_open_review(state))


async def cmd_select(state: AppState, args: list[str]) -> str:
    session = _open_review(state)
    for key in _review_keys(session, args):
        session.select(key)
    return render_review(session)


async def cmd_deselect(state: AppState, args: list[str]) -> str:
    session = _open_review(state)
    for key in _review_keys(session, args):
        session.deselect(key)
    return render_review(session)


async def cmd_assign(state: AppState, args: list[str]) -> str:
    """/assign <n> <name> (team reviews only; personal tasks are always yours)"""
    session = _open_review(state)
    if session.context.mode is TaskSource.PERSONAL:
        return "Personal review: every task is assigned to you."
    if len(args) < 2:
        return "Usage: /assign <n> <name>"
    try:
        key = session.key_at(int(args[0]))
    except ValueError:
        raise ValidationError(f"not a task number: {args[0]!r}") from None
    name = " ".join(args[1:]).strip()
    if session.team_roster and name not in session.team_roster:
        raise ValidationError(f"{name!r} is not on the team roster ({', '.join(session.team_roster)})")
    session.reassign(key, name)
    return render_review(session)


async def cmd_confirm(state: AppState, args: list[str]) -> str:
    session = _open_review(state)
    created = await state.curator.confirm(session)
    state.review = None
    return f"Created {len(created)} task(s)."


async def cmd_cancel(state: AppState, args: list[str]) -> str:
    session = _open_review(state)
    state.curator.cancel(session)
    state.review = None
    return "Review discarded. Nothing was saved."


# ---- tasks ----


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    """/tasks [all|personal|team]"""
    user = _current(state)
    try:
        view = TaskView(args[0].lower()) if args else TaskView.ALL
    except ValueError:
        return "Usage: /tasks [all|personal|team]"

    today = date.today()
    mine = my_tasks(await state.task_store.list(), user, view)
    lines = [f"Tasks ({view.value}): {len(mine.active)} active, {len(mine.completed)} done"]
    focus = focus_task(mine.active)
    if focus is not None:
        lines.append(f"  Focus: {focus.description}")
    lines.extend(f"  {format_task(state, t, today)}" for t in mine.active)
    lines.extend(f"  {format_task(state, t, today)}" for t in mine.completed)
    return "\n".join(lines)


async def cmd_toggle(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /toggle <task_id>"
    task = await _resolve_task(state, args[0])
    updated = await state.guard.request_toggle(task, _current(state))
    return f"{'Completed' if updated.completed else 'Reopened'}: {updated.description}"


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <description> [:: priority [:: YYYY-MM-DD [HH:mm] [:: team_id]]]
    """
    user = _current(state)
    parts = [p.strip() for p in " ".join(args).split("::")]
    if not parts[0]:
        return "Usage: /add <description> [:: priority [:: YYYY-MM-DD [HH:mm] [:: team_id]]]"
    priority = parts[1] if len(parts) > 1 and parts[1] else "Medium"
    deadline = NO_DEADLINE
    if len(parts) > 2 and parts[2]:
        day, _, at = parts[2].partition(" ")
        deadline = task_api.build_deadline(day, at)
    context = None
    if len(parts) > 3 and parts[3]:
        team = await _member_team(state, parts[3])
        context = ReviewContext(mode=TaskSource.TEAM, team_id=team.id)

    task = await task_api.create_manual_task(
        state.task_store,
        user,
        description=parts[0],
        priority=priority,
        deadline=deadline,
        context=context,
    )
    return f"Added {_short(task.id)}: {task.description}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <task_id> <description|assignee|priority|deadline|department> <value>"""
    fields = ("description", "assignee", "priority", "deadline", "department")
    if len(args) < 3 or args[1].lower() not in fields:
        return f"Usage: /edit <task_id> <{'|'.join(fields)}> <value>"
    _current(state)
    task = await _resolve_task(state, args[0])
    updated = await task_api.edit_task(state.task_store, task.id, **{args[1].lower(): " ".join(args[2:])})
    return f"Updated: {format_task(state, updated)}"


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delete <task_id>"
    _current(state)
    task = await _resolve_task(state, args[0])
    await task_api.delete_task(state.task_store, task.id)
    return f"Deleted: {task.description}"


async def cmd_calendar(state: AppState, args: list[str]) -> str:
    """/calendar [YYYY-MM]"""
    user = _current(state)
    month = args[0] if args else date.today().strftime("%Y-%m")
    mine = my_tasks(await state.task_store.list(), user)
    grouped = tasks_by_date([*mine.active, *mine.completed])
    days = sorted(d for d in grouped if d.startswith(month))
    if not days:
        return f"No dated tasks in {month}."
    today = date.today()
    lines = [f"Calendar {month}:"]
    for d in days:
        lines.append(f"  {d}")
        lines.extend(f"    {format_task(state, t, today)}" for t in grouped[d])
    return "\n".join(lines)


async def cmd_decisions(state: AppState, args: list[str]) -> str:
    decisions = await state.task_store.list_decisions()
    if not decisions:
        return "No decisions recorded yet."
    return "Decisions:\n" + "\n".join(f"  - {d.description}" for d in decisions)


# ---- teams ----


async def cmd_teams(state: AppState, args: list[str]) -> str:
    user = _current(state)
    teams = await state.membership.teams_for_member(user.display_name)
    if not teams:
        return "You are not in any team. Create one with /team new <name>."
    stats = team_stats(teams, await state.task_store.list(_TEAM_TASKS))
    by_id = {t.id: t for t in teams}
    lines = ["Your teams (busiest first):"]
    for s in stats:
        team = by_id[s.team_id]
        owner = " (owner)" if is_team_owner(team, user) else ""
        lines.append(f"  {_short(team.id)} {team.name}{owner} members={len(team.members)} active={s.active_count}")
    return "\n".join(lines)


async def cmd_team(state: AppState, args: list[str]) -> str:
    """
    /team new <name>             -> create a team (you become its admin)
    /team show <id>              -> roster, board and tasks
    /team join <id> <code>       -> add the user behind an invitation code
    /team leave <id>             -> leave (clears the board, drops your team tasks)
    /team delete <id>            -> delete (owner only)
    /team post <id> <text>       -> add an announcement
    """
    usage = "Usage: /team new|show|join|leave|delete|post ..."
    if not args:
        return usage
    sub, rest = args[0].lower(), args[1:]
    user = _current(state)
    mgr = state.membership

    if sub == "new":
        team = await mgr.create_team(" ".join(rest), user)
        return f"Team {team.name!r} created ({_short(team.id)})."

    if not rest:
        return usage
    team = await _resolve_team(state, rest[0])

    if sub == "show":
        if not team.has_member(user.display_name):
            raise PermissionDeniedError(f"you are not a member of team {team.name!r}")
        tasks = await state.task_store.list(_TEAM_TASKS)
        lines = [f"Team {team.name} ({_short(team.id)})", f"  Members: {', '.join(team.members)}"]
        board = await mgr.announcements(team.id)
        if board:
            lines.append("  Board:")
            lines.extend(f"    {a.created_at} {a.author}: {a.content}" for a in board)
        team_tasks = [t for t in tasks if t.team_id == team.id]
        if team_tasks:
            lines.append("  Tasks:")
            lines.extend(f"    {format_task(state, t)}" for t in team_tasks)
        return "\n".join(lines)

    if sub == "join":
        if len(rest) < 2:
            return "Usage: /team join <id> <code>"
        added = await mgr.join_by_invite_code(team.id, rest[1], requester=user)
        return "Member added." if added else "Already a member."

    if sub == "leave":
        await mgr.leave_team(team.id, user)
        return f"You left {team.name!r}."

    if sub == "delete":
        await mgr.delete_team(team.id, user)
        return f"Team {team.name!r} deleted with its tasks and announcements."

    if sub == "post":
        if not team.has_member(user.display_name):
            raise PermissionDeniedError(f"you are not a member of team {team.name!r}")
        a = await mgr.add_announcement(team.id, " ".join(rest[1:]), user.display_name)
        return f"Posted to {team.name!r} ({a.created_at})."

    return usage


# ---- profile / maintenance ----


async def cmd_rename(state: AppState, args: list[str]) -> str:
    user = _current(state)
    new_name = " ".join(args).strip()
    if not new_name:
        return "Usage: /rename <new display name>"
    report = await state.profile.rename_user(user.display_name, new_name, actor=user)
    state.identity.user = await state.user_store.get(user.user_id)
    return (
        f"Renamed to {new_name}. Updated {report.tasks} task(s), "
        f"{report.teams} team(s) and {report.announcements} announcement(s)."
    )


async def cmd_repair(state: AppState, args: list[str]) -> str:
    report = await state.membership.repair_orphans()
    if not report.total:
        return "Nothing to repair."
    return f"Removed {report.tasks} orphaned task(s) and {report.announcements} orphaned announcement(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show session, analyzer and storage status.")
registry.register("login", cmd_login, help_text="Log in or register: /login <username> [display name].")
registry.register("whoami", cmd_whoami, help_text="Show your display name and invitation code.")
registry.register("account", cmd_account, help_text="Delete your account: /account delete <username>.")
registry.register("analyze", cmd_analyze, help_text="Analyze a transcript or recording: /analyze <file> [team_id].")
registry.register("note", cmd_note, help_text="Analyze inline text: /note [team_id ::] <text>.")
registry.register("review", cmd_review, help_text="Show the staged review.")
registry.register("select", cmd_select, help_text="Select review tasks: /select <n...>|all.")
registry.register("deselect", cmd_deselect, help_text="Deselect review tasks: /deselect <n...>|all.")
registry.register("assign", cmd_assign, help_text="Reassign a review task: /assign <n> <name>.")
registry.register("confirm", cmd_confirm, help_text="Create the selected review tasks.")
registry.register("cancel", cmd_cancel, help_text="Discard the staged review.")
registry.register("tasks", cmd_tasks, help_text="List your tasks: /tasks [all|personal|team].")
registry.register("toggle", cmd_toggle, help_text="Complete or reopen a task: /toggle <task_id>.")
registry.register("add", cmd_add, help_text="Add a task: /add <text> [:: priority [:: date [time] [:: team_id]]].")
registry.register("edit", cmd_edit, help_text="Edit a task field: /edit <task_id> <field> <value>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <task_id>.")
registry.register("calendar", cmd_calendar, help_text="Tasks by day: /calendar [YYYY-MM].")
registry.register("decisions", cmd_decisions, help_text="Show the decision log.")
registry.register("teams", cmd_teams, help_text="List your teams.")
registry.register("team", cmd_team, help_text="Team actions: /team new|show|join|leave|delete|post.")
registry.register("rename", cmd_rename, help_text="Change your display name everywhere: /rename <name>.")
registry.register("repair", cmd_repair, help_text="Remove tasks/announcements of deleted teams.")
