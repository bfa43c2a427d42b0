# src/clippy_tasks/tasks/review.py

"""
Review curator.

Stages an analyzer draft, lets the reviewer select tasks and reassign
owners, and on confirmation hands the whole selected batch to the task
repository in one call.

Key invariants:
- every draft task starts selected;
- edits touch the staged copy only, the draft itself is immutable;
- personal mode: every created task is owned by the current user, whatever
  the analyzer or the reviewer said;
- team mode: the analyzer's assignee survives unless the reviewer changed it
  (any string is accepted, roster membership is checked at the edge);
- all tasks of one batch share the draft summary as relatedSummary;
- the batch is written with a single create_batch call (all-or-nothing).
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from ..analysis.draft import validate_draft
from ..core.errors import ValidationError
from ..core.ports import IdentityProvider, TaskRepo
from .task_models import DraftResult, DraftTask, Task, TaskCreationCommand, TaskSource, check_team_invariant

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReviewContext:
    mode: TaskSource
    team_id: str | None = None

    def __post_init__(self) -> None:
        check_team_invariant(self.mode, self.team_id)


class SessionState(StrEnum):
    OPEN = "open"
    COMMITTING = "committing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class StagedTask:
    key: str
    draft: DraftTask
    assignee: str


@dataclass(slots=True)
class ReviewSession:
    id: str
    draft: DraftResult
    context: ReviewContext
    tasks: list[StagedTask]
    selected: set[str]
    # Valid reassignment targets offered by the UI in team mode.
    team_roster: tuple[str, ...] = ()
    state: SessionState = SessionState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    def _require_open(self) -> None:
        if not self.is_open:
            raise ValidationError(f"review session {self.id} is {self.state.value}")

    def _staged(self, key: str) -> StagedTask:
        for st in self.tasks:
            if st.key == key:
                return st
        raise ValidationError(f"no staged task {key!r} in session {self.id}")

    def key_at(self, index: int) -> str:
        """1-based position -> staging key (console convenience)."""
        if not 1 <= index <= len(self.tasks):
            raise ValidationError(f"task number must be between 1 and {len(self.tasks)}")
        return self.tasks[index - 1].key

    def select(self, key: str) -> None:
        self._require_open()
        self.selected.add(self._staged(key).key)

    def deselect(self, key: str) -> None:
        self._require_open()
        self.selected.discard(self._staged(key).key)

    def toggle(self, key: str) -> bool:
        """Flip selection; returns the new selected state."""
        if key in self.selected:
            self.deselect(key)
            return False
        self.select(key)
        return True

    def reassign(self, key: str, assignee: str) -> None:
        self._require_open()
        self._staged(key).assignee = assignee.strip()

    def selected_tasks(self) -> list[StagedTask]:
        return [st for st in self.tasks if st.key in self.selected]


@dataclass(frozen=True, slots=True)
class TaskCreationBatch:
    summary: str
    commands: tuple[TaskCreationCommand, ...]
    decisions: tuple[str, ...] = field(default=())

    def __len__(self) -> int:
        return len(self.commands)


class ReviewCurator:
    def __init__(self, task_repo: TaskRepo, identity: IdentityProvider) -> None:
        self._repo = task_repo
        self._identity = identity

    def stage(
        self,
        draft: DraftResult,
        context: ReviewContext,
        *,
        team_roster: Sequence[str] = (),
    ) -> ReviewSession:
        validate_draft(draft)
        tasks = [StagedTask(key=uuid.uuid4().hex, draft=t, assignee=t.assignee) for t in draft.tasks]
        session = ReviewSession(
            id=uuid.uuid4().hex,
            draft=draft,
            context=context,
            tasks=tasks,
            selected={st.key for st in tasks},
            team_roster=tuple(team_roster),
        )
        logger.info(
            "Review staged session=%s mode=%s team=%s tasks=%d decisions=%d",
            session.id,
            context.mode.value,
            context.team_id,
            len(tasks),
            len(draft.decisions),
        )
        return session

    def build_batch(
        self,
        session: ReviewSession,
        selected_ids: Iterable[str] | None = None,
        edits: Mapping[str, str] | None = None,
    ) -> TaskCreationBatch:
        """Pure: turn the session (+ optional overrides) into creation commands."""
        known = {st.key for st in session.tasks}
        selected = set(session.selected if selected_ids is None else selected_ids)
        edits = dict(edits or {})
        unknown = (selected | set(edits)) - known
        if unknown:
            raise ValidationError(f"unknown staged task id(s): {', '.join(sorted(unknown))}")

        ctx = session.context
        owner = self._identity.current_user().display_name if ctx.mode is TaskSource.PERSONAL else None
        summary = session.draft.summary

        commands: list[TaskCreationCommand] = []
        for st in session.tasks:
            if st.key not in selected:
                continue
            assignee = owner if owner is not None else edits.get(st.key, st.assignee)
            commands.append(
                TaskCreationCommand(
                    description=st.draft.description,
                    assignee=assignee,
                    priority=st.draft.priority,
                    department=st.draft.department,
                    deadline=st.draft.deadline,
                    source=ctx.mode,
                    team_id=ctx.team_id,
                    related_summary=summary,
                )
            )
        return TaskCreationBatch(summary=summary, commands=tuple(commands), decisions=session.draft.decisions)

    async def confirm(
        self,
        session: ReviewSession,
        selected_ids: Iterable[str] | None = None,
        edits: Mapping[str, str] | None = None,
    ) -> list[Task]:
        """
        Build the batch and write it in one repository call.

        On a repository failure nothing is created, the session reopens so the
        user can retry, and the error propagates.
        """
        session._require_open()
        batch = self.build_batch(session, selected_ids, edits)

        session.state = SessionState.COMMITTING
        try:
            created = await self._repo.create_batch(batch.commands, decisions=batch.decisions)
        except Exception:
            session.state = SessionState.OPEN
            logger.warning("Review confirm failed session=%s; nothing committed", session.id)
            raise
        session.state = SessionState.CONFIRMED
        logger.info("Review confirmed session=%s created=%d of %d", session.id, len(created), len(session.tasks))
        return created

    def cancel(self, session: ReviewSession) -> None:
        if session.state is SessionState.COMMITTING:
            raise ValidationError("review batch is being written and can no longer be cancelled")
        if session.state is SessionState.OPEN:
            session.state = SessionState.CANCELLED
            logger.info("Review cancelled session=%s", session.id)
