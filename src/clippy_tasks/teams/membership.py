# src/clippy_tasks/teams/membership.py

"""
Team membership manager.

Owns team lifecycle (create, delete cascade, join, leave) and the
announcement board. Rosters hold display-name snapshots; the creator's
entry carries the admin suffix.

Deleting a team touches three collections with no shared transaction. The
tasks and announcements go first and the team record last, so a failure
part-way leaves the team visible and the owner can simply retry; whatever
is left behind by a crash in between is picked up by `repair_orphans`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date

from ..core.errors import CascadeDeleteError, NotFoundError, PermissionDeniedError, ValidationError
from ..core.identity import CurrentUser, admin_entry, assignee_matches
from ..core.ports import AnnouncementRepo, TaskRepo, TeamRepo, UserDirectory
from ..tasks.task_models import TaskFilter, TaskSource
from .team_models import Announcement, Team

logger = logging.getLogger(__name__)

STEP_TASKS = "tasks"
STEP_ANNOUNCEMENTS = "announcements"
STEP_TEAM = "team"
STEP_ROSTER = "roster"


@dataclass(frozen=True, slots=True)
class OrphanReport:
    tasks: int = 0
    announcements: int = 0

    @property
    def total(self) -> int:
        return self.tasks + self.announcements


def is_team_owner(team: Team, user: CurrentUser) -> bool:
    return team.created_by == user.user_id


class TeamMembershipManager:
    def __init__(
        self,
        team_repo: TeamRepo,
        task_repo: TaskRepo,
        announcement_repo: AnnouncementRepo,
        directory: UserDirectory,
    ) -> None:
        self._teams = team_repo
        self._tasks = task_repo
        self._announcements = announcement_repo
        self._directory = directory

    async def _require_team(self, team_id: str) -> Team:
        team = await self._teams.get(team_id)
        if team is None:
            raise NotFoundError(f"team {team_id} not found")
        return team

    @staticmethod
    def _require_member(team: Team, user: CurrentUser) -> None:
        if not team.has_member(user.display_name):
            raise PermissionDeniedError(f"you are not a member of team {team.name!r}")

    # ---- team lifecycle ----

    async def create_team(self, name: str, creator: CurrentUser) -> Team:
        name = (name or "").strip()
        if not name:
            raise ValidationError("team name is required")
        team = await self._teams.create(
            name=name,
            members=[admin_entry(creator.display_name)],
            created_by=creator.user_id,
        )
        logger.info("Team created id=%s name=%r by=%s", team.id, team.name, creator.user_id)
        return team

    async def delete_team(self, team_id: str, requester: CurrentUser) -> None:
        """
        Owner-only cascade: team tasks, then announcements, then the record.

        Every step is attempted even if an earlier one failed; the team record
        is only removed when both content deletes went through. Raises
        CascadeDeleteError listing completed and failed steps.
        """
        team = await self._require_team(team_id)
        if not is_team_owner(team, requester):
            logger.info("Team delete denied team=%s requester=%s", team_id, requester.user_id)
            raise PermissionDeniedError(
                "only the team's creator can delete it",
                authorized=team.created_by,
            )

        completed: list[str] = []
        failed: list[str] = []

        async def step(name: str, fn: Callable[[], Awaitable[object]]) -> None:
            try:
                await fn()
            except Exception as exc:
                logger.warning("Team delete step %s failed team=%s: %s", name, team_id, exc)
                failed.append(name)
            else:
                completed.append(name)

        await step(STEP_TASKS, lambda: self._delete_team_tasks(team_id))
        await step(STEP_ANNOUNCEMENTS, lambda: self._delete_team_announcements(team_id))
        if failed:
            failed.append(STEP_TEAM)
        else:
            await step(STEP_TEAM, lambda: self._teams.delete(team_id))

        if failed:
            raise CascadeDeleteError(f"team {team_id} was only partially deleted", completed=completed, failed=failed)
        logger.info("Team deleted id=%s by=%s", team_id, requester.user_id)

    async def _delete_team_tasks(self, team_id: str, *, assignee: str | None = None) -> int:
        tasks = await self._tasks.list(TaskFilter(source=TaskSource.TEAM, team_id=team_id))
        n = 0
        for t in tasks:
            if assignee is not None and not assignee_matches(t.assignee, assignee):
                continue
            await self._tasks.delete(t.id)
            n += 1
        return n

    async def _delete_team_announcements(self, team_id: str) -> int:
        items = await self._announcements.list(team_id)
        for a in items:
            await self._announcements.delete(a.id)
        return len(items)

    # ---- membership ----

    async def join_by_invite_code(
        self,
        team_id: str,
        code: str,
        *,
        requester: CurrentUser | None = None,
    ) -> bool:
        """
        Add the user behind `code` to the roster.

        When `requester` is given they must already be on the team.
        Returns False when the invitee is already a member (plain or admin entry).
        """
        team = await self._require_team(team_id)
        if requester is not None:
            self._require_member(team, requester)
        name = await self._directory.resolve_invite_code(code)
        if name is None:
            raise NotFoundError(f"invitation code {code!r} not found")
        if team.has_member(name):
            return False
        await self._teams.update(team_id, {"members": [*team.members, name]})
        logger.info("Team join team=%s member=%r", team_id, name)
        return True

    async def leave_team(self, team_id: str, member: CurrentUser) -> None:
        """
        Remove every roster entry for `member`, clear the team's board and
        delete the team tasks assigned to them. Teammates' tasks stay.
        """
        team = await self._require_team(team_id)
        self._require_member(team, member)
        name = member.display_name
        remaining = [m for m in team.members if m not in (name, admin_entry(name))]

        completed: list[str] = []
        failed: list[str] = []
        for step_name, fn in (
            (STEP_ROSTER, lambda: self._teams.update(team_id, {"members": remaining})),
            (STEP_ANNOUNCEMENTS, lambda: self._delete_team_announcements(team_id)),
            (STEP_TASKS, lambda: self._delete_team_tasks(team_id, assignee=name)),
        ):
            try:
                await fn()
            except Exception as exc:
                logger.warning("Team leave step %s failed team=%s: %s", step_name, team_id, exc)
                failed.append(step_name)
            else:
                completed.append(step_name)

        if failed:
            raise CascadeDeleteError(
                f"leaving team {team_id} was only partially applied",
                completed=completed,
                failed=failed,
            )
        logger.info("Team leave team=%s member=%r", team_id, name)

    async def teams_for_member(self, display_name: str) -> list[Team]:
        return [t for t in await self._teams.list() if t.has_member(display_name)]

    # ---- announcements ----

    async def add_announcement(
        self,
        team_id: str,
        content: str,
        author: str,
        *,
        today: date | None = None,
    ) -> Announcement:
        content = (content or "").strip()
        if not content:
            raise ValidationError("announcement content is required")
        await self._require_team(team_id)
        a = await self._announcements.create(
            team_id=team_id,
            content=content,
            created_at=(today or date.today()).isoformat(),
            author=author,
        )
        logger.info("Announcement added id=%s team=%s", a.id, team_id)
        return a

    async def announcements(self, team_id: str) -> list[Announcement]:
        return await self._announcements.list(team_id)

    # ---- reconciliation ----

    async def repair_orphans(self) -> OrphanReport:
        """Delete tasks and announcements whose team no longer exists."""
        live = {t.id for t in await self._teams.list()}

        tasks = 0
        for t in await self._tasks.list(TaskFilter(source=TaskSource.TEAM)):
            if t.team_id not in live:
                await self._tasks.delete(t.id)
                tasks += 1

        announcements = 0
        for a in await self._announcements.list():
            if a.team_id not in live:
                await self._announcements.delete(a.id)
                announcements += 1

        report = OrphanReport(tasks=tasks, announcements=announcements)
        if report.total:
            logger.warning("Orphans repaired tasks=%d announcements=%d", tasks, announcements)
        return report
