# tests/fakes.py

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from clippy_tasks.core.errors import NotFoundError, RepositoryError
from clippy_tasks.core.identity import CurrentUser
from clippy_tasks.core.ports import ChatMessage
from clippy_tasks.tasks.task_models import (
    Decision,
    DraftResult,
    Priority,
    Task,
    TaskCreationCommand,
    TaskFilter,
    TaskSource,
)
from clippy_tasks.teams.team_models import Announcement, Team


def _id() -> str:
    return uuid.uuid4().hex


class _FailureInjection:
    """Mixin: `fail_on` holds operation names that raise RepositoryError."""

    fail_on: set[str]

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise RepositoryError(f"injected failure in {type(self).__name__}.{op}")


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Returns a predefined text, or raises `error` if set
    """

    def __init__(self, next_text: str = '{"summary": "ok", "tasks": [], "decisions": []}') -> None:
        self.next_text = next_text
        self.error: Exception | None = None
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def complete_json(self, messages: list[ChatMessage], system_prompt: str) -> str:
        self.calls.append((messages, system_prompt))
        if self.error is not None:
            raise self.error
        return self.next_text


@dataclass(slots=True)
class FakeIdentity:
    user: CurrentUser

    def current_user(self) -> CurrentUser:
        return self.user


@dataclass(slots=True)
class FakeDirectory:
    """Invitation code -> display name."""

    codes: dict[str, str] = field(default_factory=dict)

    async def resolve_invite_code(self, code: str) -> str | None:
        return self.codes.get(code)


@dataclass(slots=True)
class FakeAnalyzer:
    draft: DraftResult | None = None
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def analyze(self, content: str, *, mime_type: str | None = None, team_roster=None) -> DraftResult:
        self.calls.append({"content": content, "mime_type": mime_type, "team_roster": team_roster})
        if self.error is not None:
            raise self.error
        assert self.draft is not None
        return self.draft


class InMemoryTaskRepo(_FailureInjection):
    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self.tasks: dict[str, Task] = {t.id: t for t in tasks}
        self.decisions: list[Decision] = []
        self.fail_on: set[str] = set()
        self.batch_calls = 0

    async def create(self, command: TaskCreationCommand) -> Task:
        (task,) = await self.create_batch([command])
        return task

    async def create_batch(
        self,
        commands: Sequence[TaskCreationCommand],
        *,
        decisions: Iterable[str] = (),
    ) -> list[Task]:
        self.batch_calls += 1
        self._check("create_batch")
        created = [cmd.to_task(_id()) for cmd in commands]
        for t in created:
            self.tasks[t.id] = t
        self.decisions.extend(Decision(id=_id(), description=d) for d in decisions)
        return created

    async def get(self, task_id: str) -> Task | None:
        self._check("get")
        return self.tasks.get(task_id)

    async def update(self, task_id: str, patch: Mapping[str, Any]) -> None:
        self._check("update")
        t = self.tasks.get(task_id)
        if t is None:
            raise NotFoundError(task_id)
        data = t.to_wire()
        data.update(patch)
        self.tasks[task_id] = Task.from_wire(data)

    async def delete(self, task_id: str) -> None:
        self._check("delete")
        self.tasks.pop(task_id, None)

    async def list(self, task_filter: TaskFilter | None = None) -> list[Task]:
        self._check("list")
        return [t for t in self.tasks.values() if task_filter is None or task_filter.matches(t)]

    async def subscribe(self, task_filter: TaskFilter | None = None) -> AsyncIterator[list[Task]]:
        yield await self.list(task_filter)

    async def list_decisions(self) -> list[Decision]:
        return list(self.decisions)


class InMemoryTeamRepo(_FailureInjection):
    def __init__(self, teams: Iterable[Team] = ()) -> None:
        self.teams: dict[str, Team] = {t.id: t for t in teams}
        self.fail_on: set[str] = set()

    async def create(self, *, name: str, members: Sequence[str], created_by: str) -> Team:
        self._check("create")
        team = Team(id=_id(), name=name, members=list(members), created_by=created_by)
        self.teams[team.id] = team
        return replace(team, members=list(team.members))

    async def get(self, team_id: str) -> Team | None:
        t = self.teams.get(team_id)
        return None if t is None else replace(t, members=list(t.members))

    async def update(self, team_id: str, patch: Mapping[str, Any]) -> None:
        self._check("update")
        t = self.teams.get(team_id)
        if t is None:
            raise NotFoundError(team_id)
        self.teams[team_id] = replace(
            t,
            name=patch.get("name", t.name),
            members=list(patch.get("members", t.members)),
        )

    async def delete(self, team_id: str) -> None:
        self._check("delete")
        self.teams.pop(team_id, None)

    async def list(self) -> list[Team]:
        return [replace(t, members=list(t.members)) for t in self.teams.values()]


class InMemoryAnnouncementRepo(_FailureInjection):
    def __init__(self) -> None:
        self.items: dict[str, Announcement] = {}
        self.fail_on: set[str] = set()

    async def create(self, *, team_id: str, content: str, created_at: str, author: str) -> Announcement:
        self._check("create")
        a = Announcement(id=_id(), team_id=team_id, content=content, created_at=created_at, author=author)
        self.items[a.id] = a
        return a

    async def update_author(self, announcement_id: str, author: str) -> None:
        self._check("update_author")
        self.items[announcement_id] = replace(self.items[announcement_id], author=author)

    async def delete(self, announcement_id: str) -> None:
        self._check("delete")
        self.items.pop(announcement_id, None)

    async def list(self, team_id: str | None = None) -> list[Announcement]:
        return [a for a in self.items.values() if team_id is None or a.team_id == team_id]


def make_task(
    *,
    description: str = "Write report",
    assignee: str = "Kim",
    source: TaskSource = TaskSource.TEAM,
    team_id: str | None = "team-1",
    completed: bool = False,
    priority: Priority = Priority.MEDIUM,
    deadline: str = "no deadline",
    task_id: str | None = None,
) -> Task:
    return Task(
        id=task_id or _id(),
        description=description,
        assignee=assignee,
        priority=priority,
        department="General",
        deadline=deadline,
        completed=completed,
        source=source,
        team_id=team_id if source is TaskSource.TEAM else None,
        related_summary=None,
    )


async def next_snapshot(gen: AsyncIterator[list[Task]], timeout: float = 2.0) -> list[Task]:
    return await asyncio.wait_for(gen.__anext__(), timeout)
