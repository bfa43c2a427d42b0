# src/clippy_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations, so the
SQLite stores, the LLM analyzer and the user directory can be swapped for
in-memory fakes in tests or for a remote document store later.

Every repository call returns an awaitable: these are the suspension points
of the core. Nothing else awaits.
"""

from collections.abc import AsyncIterator, Awaitable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from ..tasks.task_models import Decision, DraftResult, Task, TaskCreationCommand, TaskFilter
from ..teams.team_models import Announcement, Team
from .identity import CurrentUser

ChatMessage = dict[str, Any]
# OpenAI-style chat messages: {"role": "...", "content": "..." | [parts]}.


class LLMClient(Protocol):
    """Blocking JSON chat completion against an OpenAI-compatible endpoint."""

    def complete_json(self, messages: list[ChatMessage], system_prompt: str) -> str: ...


class Analyzer(Protocol):
    """text-or-base64-audio (+ optional roster) -> DraftResult, or AnalysisError."""

    def analyze(
        self,
        content: str,
        *,
        mime_type: str | None = None,
        team_roster: Sequence[str] | None = None,
    ) -> Awaitable[DraftResult]: ...


class IdentityProvider(Protocol):
    def current_user(self) -> CurrentUser: ...


class UserDirectory(Protocol):
    def resolve_invite_code(self, code: str) -> Awaitable[str | None]: ...


class TaskRepo(Protocol):
    """
    Authoritative task collection.

    - create/create_batch assign ids before records become visible;
    - create_batch commits every record (and the batch decisions) jointly;
    - update is a merge-patch keyed by wire field names;
    - no cross-field invariant checks: callers validate first.
    """

    def create(self, command: TaskCreationCommand) -> Awaitable[Task]: ...

    def create_batch(
        self,
        commands: Sequence[TaskCreationCommand],
        *,
        decisions: Iterable[str] = (),
    ) -> Awaitable[list[Task]]: ...

    def get(self, task_id: str) -> Awaitable[Task | None]: ...
    def update(self, task_id: str, patch: Mapping[str, Any]) -> Awaitable[None]: ...
    def delete(self, task_id: str) -> Awaitable[None]: ...
    def list(self, task_filter: TaskFilter | None = None) -> Awaitable[list[Task]]: ...
    def subscribe(self, task_filter: TaskFilter | None = None) -> AsyncIterator[list[Task]]: ...
    def list_decisions(self) -> Awaitable[list[Decision]]: ...


class TeamRepo(Protocol):
    def create(self, *, name: str, members: Sequence[str], created_by: str) -> Awaitable[Team]: ...
    def get(self, team_id: str) -> Awaitable[Team | None]: ...
    def update(self, team_id: str, patch: Mapping[str, Any]) -> Awaitable[None]: ...
    def delete(self, team_id: str) -> Awaitable[None]: ...
    def list(self) -> Awaitable[list[Team]]: ...


class AnnouncementRepo(Protocol):
    def create(self, *, team_id: str, content: str, created_at: str, author: str) -> Awaitable[Announcement]: ...
    def update_author(self, announcement_id: str, author: str) -> Awaitable[None]: ...
    def delete(self, announcement_id: str) -> Awaitable[None]: ...
    def list(self, team_id: str | None = None) -> Awaitable[list[Announcement]]: ...
