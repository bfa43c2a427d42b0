# src/clippy_tasks/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import time
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from ..core.sqlite_base import SQLiteStore
from .task_models import (
    NO_DEADLINE,
    PATCHABLE_WIRE_FIELDS,
    Decision,
    Priority,
    Task,
    TaskCreationCommand,
    TaskFilter,
    TaskSource,
)

logger = logging.getLogger(__name__)

# wire field -> column
_COLUMNS: dict[str, str] = {
    "description": "description",
    "assignee": "assignee",
    "priority": "priority",
    "department": "department",
    "deadline": "deadline",
    "completed": "completed",
    "source": "source",
    "teamId": "team_id",
    "relatedSummary": "related_summary",
}


def _column_value(wire_field: str, value: Any) -> Any:
    if wire_field == "completed":
        return 1 if value else 0
    if wire_field == "priority":
        return Priority.parse(value).value
    if wire_field == "source":
        return TaskSource.parse(value).value
    if value is None:
        return None
    return str(value)


class TaskStore(SQLiteStore):
    """
    SQLite task repository.

    Batch atomicity: `create_batch` inserts every task and the batch decisions
    in one transaction and notifies subscribers once after commit, so an
    observer sees either none or all of a confirmed review batch.

    Subscriptions are in-process only: they observe writes made through this
    store instance, not through other processes sharing the file.
    """

    label = "TaskStore"

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._subscribers: set[asyncio.Queue[None]] = set()
        super().__init__(db_path)
        try:
            total = self._count_tasks()
        except Exception:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def _create_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                description TEXT NOT NULL,
                assignee TEXT NOT NULL DEFAULT '',
                priority TEXT NOT NULL DEFAULT 'Medium',
                department TEXT NOT NULL DEFAULT '',
                deadline TEXT NOT NULL DEFAULT 'no deadline',
                completed INTEGER NOT NULL DEFAULT 0,
                source TEXT NOT NULL DEFAULT 'personal',
                team_id TEXT,
                related_summary TEXT,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(
            cur,
            "tasks",
            {
                "department": "TEXT NOT NULL DEFAULT ''",
                "related_summary": "TEXT",
                "updated_at": "REAL NOT NULL DEFAULT 0",
            },
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_team ON tasks(team_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_source ON tasks(source, completed)")

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS decisions (
                id TEXT PRIMARY KEY,
                description TEXT NOT NULL,
                created_at REAL NOT NULL
            )
            """
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            description=str(row["description"] or ""),
            assignee=str(row["assignee"] or ""),
            priority=Priority.parse(row["priority"]),
            department=str(row["department"] or ""),
            deadline=str(row["deadline"] or NO_DEADLINE),
            completed=bool(row["completed"]),
            source=TaskSource.parse(row["source"]),
            team_id=row["team_id"],
            related_summary=row["related_summary"],
        )

    def _notify(self) -> None:
        for q in list(self._subscribers):
            # Queue size 1: a pending wake-up already covers this change.
            with contextlib.suppress(asyncio.QueueFull):
                q.put_nowait(None)

    # ---- blocking bodies ----

    def _count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def _insert_batch(self, commands: Sequence[TaskCreationCommand], decisions: Sequence[str]) -> list[Task]:
        now = time.time()
        created: list[Task] = []
        with self._tx() as conn:
            for cmd in commands:
                task = cmd.to_task(self._new_id())
                conn.execute(
                    """
                    INSERT INTO tasks(
                        id, description, assignee, priority, department, deadline,
                        completed, source, team_id, related_summary, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        task.id,
                        task.description,
                        task.assignee,
                        task.priority.value,
                        task.department,
                        task.deadline,
                        0,
                        task.source.value,
                        task.team_id,
                        task.related_summary,
                        now,
                        now,
                    ),
                )
                created.append(task)
            for text in decisions:
                conn.execute(
                    "INSERT INTO decisions(id, description, created_at) VALUES (?, ?, ?)",
                    (self._new_id(), text, now),
                )
        return created

    def _select_one(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def _apply_patch(self, task_id: str, patch: Mapping[str, Any]) -> int:
        fields: list[str] = []
        params: list[Any] = []
        for key, value in patch.items():
            fields.append(f"{_COLUMNS[key]} = ?")
            params.append(_column_value(key, value))
        fields.append("updated_at = ?")
        params.append(time.time())
        params.append(task_id)
        with self._tx() as conn:
            cur = conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
            return cur.rowcount

    def _delete_row(self, task_id: str) -> int:
        with self._tx() as conn:
            return conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,)).rowcount

    def _select(self, task_filter: TaskFilter | None) -> list[Task]:
        where: list[str] = []
        params: list[Any] = []
        if task_filter is not None:
            if task_filter.source is not None:
                where.append("source = ?")
                params.append(task_filter.source.value)
            if task_filter.team_id is not None:
                where.append("team_id = ?")
                params.append(task_filter.team_id)
            if task_filter.completed is not None:
                where.append("completed = ?")
                params.append(1 if task_filter.completed else 0)
        sql = "SELECT * FROM tasks"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at ASC, rowid ASC"

        conn = self._get_conn()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        tasks = [self._row_to_task(r) for r in rows]
        if task_filter is not None and task_filter.ids is not None:
            tasks = [t for t in tasks if t.id in task_filter.ids]
        return tasks

    def _select_decisions(self) -> list[Decision]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT id, description FROM decisions ORDER BY created_at ASC, rowid ASC").fetchall()
            return [Decision(id=str(r["id"]), description=str(r["description"])) for r in rows]
        finally:
            conn.close()

    # ---- public API ----

    async def create(self, command: TaskCreationCommand) -> Task:
        (task,) = await self.create_batch([command])
        return task

    async def create_batch(
        self,
        commands: Sequence[TaskCreationCommand],
        *,
        decisions: Iterable[str] = (),
    ) -> list[Task]:
        decision_list = [d for d in decisions if d and d.strip()]
        if not commands and not decision_list:
            return []
        created = await self._run(self._insert_batch, list(commands), decision_list)
        logger.info(
            "Tasks created n=%d decisions=%d ids=%s",
            len(created),
            len(decision_list),
            [t.id for t in created],
        )
        self._notify()
        return created

    async def get(self, task_id: str) -> Task | None:
        return await self._run(self._select_one, task_id)

    async def update(self, task_id: str, patch: Mapping[str, Any]) -> None:
        unknown = set(patch) - PATCHABLE_WIRE_FIELDS
        if unknown:
            raise ValidationError(f"unknown task field(s) in patch: {', '.join(sorted(unknown))}")
        if not patch:
            return
        n = await self._run(self._apply_patch, task_id, dict(patch))
        if n == 0:
            raise NotFoundError(f"task {task_id} not found")
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(patch))
        self._notify()

    async def delete(self, task_id: str) -> None:
        n = await self._run(self._delete_row, task_id)
        if n:
            logger.debug("Task deleted id=%s", task_id)
            self._notify()

    async def list(self, task_filter: TaskFilter | None = None) -> list[Task]:
        return await self._run(self._select, task_filter)

    async def list_decisions(self) -> list[Decision]:
        return await self._run(self._select_decisions)

    async def subscribe(self, task_filter: TaskFilter | None = None) -> AsyncIterator[list[Task]]:
        """
        Yield the full filtered task list now, then again after every committed change.

        Bursts of writes between two reads collapse into a single snapshot.
        """
        queue: asyncio.Queue[None] = asyncio.Queue(maxsize=1)
        self._subscribers.add(queue)
        try:
            yield await self.list(task_filter)
            while True:
                await queue.get()
                yield await self.list(task_filter)
        finally:
            self._subscribers.discard(queue)
