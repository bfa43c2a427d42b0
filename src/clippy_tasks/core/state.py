# src/clippy_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.errors import PermissionDeniedError
from ..core.identity import CurrentUser
from ..core.ports import Analyzer, LLMClient
from ..tasks.lifecycle import TaskLifecycleGuard
from ..tasks.review import ReviewCurator, ReviewSession
from ..tasks.task_store import TaskStore
from ..teams.membership import TeamMembershipManager
from ..teams.team_store import AnnouncementStore, TeamStore
from ..users.profile import ProfilePropagation
from ..users.user_store import User, UserStore


@dataclass(slots=True)
class SessionIdentity:
    """IdentityProvider for a single console session."""

    user: User | None = None

    def current_user(self) -> CurrentUser:
        if self.user is None:
            raise PermissionDeniedError("not logged in; use /login <username> [display name]")
        return self.user.as_current()

    @property
    def logged_in(self) -> bool:
        return self.user is not None


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    llm: LLMClient
    analyzer: Analyzer

    task_store: TaskStore
    team_store: TeamStore
    announcement_store: AnnouncementStore
    user_store: UserStore

    identity: SessionIdentity
    curator: ReviewCurator
    guard: TaskLifecycleGuard
    membership: TeamMembershipManager
    profile: ProfilePropagation

    # Review staged by /analyze or /note, waiting for /confirm or /cancel.
    review: ReviewSession | None = None
    offline: bool = False

    def close(self) -> None:
        for store in (self.task_store, self.team_store, self.announcement_store, self.user_store):
            store.close()
