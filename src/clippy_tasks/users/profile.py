# src/clippy_tasks/users/profile.py

"""
Display-name propagation.

Assignees, roster entries and announcement authors are snapshots of a
display name. When a user renames themselves this pass rewrites the exact
snapshots: the old name, or the old name with the admin suffix (which is
preserved). Strings that merely contain the old name are left alone, so
"Kim Min-su" survives a rename of "Kim".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.errors import ValidationError
from ..core.identity import CurrentUser, renamed
from ..core.ports import AnnouncementRepo, TaskRepo, TeamRepo
from .user_store import UserStore, check_display_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RenameReport:
    tasks: int = 0
    teams: int = 0
    announcements: int = 0


class ProfilePropagation:
    def __init__(
        self,
        task_repo: TaskRepo,
        team_repo: TeamRepo,
        announcement_repo: AnnouncementRepo,
        users: UserStore | None = None,
    ) -> None:
        self._tasks = task_repo
        self._teams = team_repo
        self._announcements = announcement_repo
        self._users = users

    async def rename_user(self, old_name: str, new_name: str, *, actor: CurrentUser | None = None) -> RenameReport:
        """
        Rewrite every exact snapshot of `old_name` to `new_name`.

        When `actor` is given, their directory record is updated first so
        invitation codes resolve to the new name from now on.
        """
        new_name = check_display_name(new_name)
        old_name = (old_name or "").strip()
        if not old_name:
            raise ValidationError("old display name is required")
        if old_name == new_name:
            return RenameReport()

        if actor is not None and self._users is not None:
            await self._users.update_display_name(actor.user_id, new_name)

        tasks = 0
        for t in await self._tasks.list():
            value = renamed(t.assignee, old_name, new_name)
            if value is not None:
                await self._tasks.update(t.id, {"assignee": value})
                tasks += 1

        teams = 0
        for team in await self._teams.list():
            members = [renamed(m, old_name, new_name) or m for m in team.members]
            if members != team.members:
                await self._teams.update(team.id, {"members": members})
                teams += 1

        announcements = 0
        for a in await self._announcements.list():
            if a.author == old_name:
                await self._announcements.update_author(a.id, new_name)
                announcements += 1

        report = RenameReport(tasks=tasks, teams=teams, announcements=announcements)
        logger.info(
            "Rename %r -> %r rewrote tasks=%d teams=%d announcements=%d",
            old_name,
            new_name,
            tasks,
            teams,
            announcements,
        )
        return report
