# src/clippy_tasks/teams/team_store.py

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from ..core.sqlite_base import SQLiteStore
from .team_models import Announcement, Team

logger = logging.getLogger(__name__)


def _members_to_str(members: Sequence[str]) -> str:
    return json.dumps([str(m) for m in members], ensure_ascii=False)


def _str_to_members(s: str | None) -> list[str]:
    if not s:
        return []
    try:
        val = json.loads(s)
    except ValueError:
        logger.warning("Corrupt members column; treating as empty roster.")
        return []
    return [str(m) for m in val] if isinstance(val, list) else []


class TeamStore(SQLiteStore):
    """SQLite team repository. Rosters are stored as ordered JSON arrays."""

    label = "TeamStore"

    def __init__(self, db_path: str | Path = "teams.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("TeamStore ready db=%s", self._db_path)

    def _create_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS teams (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                members TEXT NOT NULL DEFAULT '[]',
                created_by TEXT NOT NULL DEFAULT '',
                created_at REAL NOT NULL
            )
            """
        )

    @staticmethod
    def _row_to_team(row: sqlite3.Row) -> Team:
        return Team(
            id=str(row["id"]),
            name=str(row["name"]),
            members=_str_to_members(row["members"]),
            created_by=str(row["created_by"] or ""),
        )

    def _insert(self, team: Team) -> None:
        with self._tx() as conn:
            conn.execute(
                "INSERT INTO teams(id, name, members, created_by, created_at) VALUES (?, ?, ?, ?, ?)",
                (team.id, team.name, _members_to_str(team.members), team.created_by, time.time()),
            )

    def _select_one(self, team_id: str) -> Team | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
            return self._row_to_team(row) if row else None
        finally:
            conn.close()

    def _select_all(self) -> list[Team]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM teams ORDER BY created_at ASC, rowid ASC").fetchall()
            return [self._row_to_team(r) for r in rows]
        finally:
            conn.close()

    def _apply_patch(self, team_id: str, patch: dict[str, Any]) -> int:
        fields: list[str] = []
        params: list[Any] = []
        if "name" in patch:
            fields.append("name = ?")
            params.append(str(patch["name"]))
        if "members" in patch:
            fields.append("members = ?")
            params.append(_members_to_str(patch["members"]))
        params.append(team_id)
        with self._tx() as conn:
            return conn.execute(f"UPDATE teams SET {', '.join(fields)} WHERE id = ?", params).rowcount

    def _delete_row(self, team_id: str) -> int:
        with self._tx() as conn:
            return conn.execute("DELETE FROM teams WHERE id = ?", (team_id,)).rowcount

    # ---- public API ----

    async def create(self, *, name: str, members: Sequence[str], created_by: str) -> Team:
        team = Team(id=self._new_id(), name=name, members=list(members), created_by=created_by)
        await self._run(self._insert, team)
        return team

    async def get(self, team_id: str) -> Team | None:
        return await self._run(self._select_one, team_id)

    async def update(self, team_id: str, patch: Mapping[str, Any]) -> None:
        unknown = set(patch) - {"name", "members"}
        if unknown:
            raise ValidationError(f"unknown team field(s) in patch: {', '.join(sorted(unknown))}")
        if not patch:
            return
        if await self._run(self._apply_patch, team_id, dict(patch)) == 0:
            raise NotFoundError(f"team {team_id} not found")

    async def delete(self, team_id: str) -> None:
        await self._run(self._delete_row, team_id)

    async def list(self) -> list[Team]:
        return await self._run(self._select_all)


class AnnouncementStore(SQLiteStore):
    """Append-only team announcements (author may be rewritten by a rename)."""

    label = "AnnouncementStore"

    def __init__(self, db_path: str | Path = "teams.sqlite3") -> None:
        super().__init__(db_path)

    def _create_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS announcements (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL,
                author TEXT NOT NULL DEFAULT '',
                inserted_at REAL NOT NULL
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_announcements_team ON announcements(team_id)")

    @staticmethod
    def _row_to_announcement(row: sqlite3.Row) -> Announcement:
        return Announcement(
            id=str(row["id"]),
            team_id=str(row["team_id"]),
            content=str(row["content"]),
            created_at=str(row["created_at"]),
            author=str(row["author"] or ""),
        )

    def _insert(self, a: Announcement) -> None:
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO announcements(id, team_id, content, created_at, author, inserted_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (a.id, a.team_id, a.content, a.created_at, a.author, time.time()),
            )

    def _select(self, team_id: str | None) -> list[Announcement]:
        # Newest first, the way a notice board reads.
        conn = self._get_conn()
        try:
            if team_id is None:
                rows = conn.execute("SELECT * FROM announcements ORDER BY inserted_at DESC, rowid DESC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM announcements WHERE team_id = ? ORDER BY inserted_at DESC, rowid DESC",
                    (team_id,),
                ).fetchall()
            return [self._row_to_announcement(r) for r in rows]
        finally:
            conn.close()

    def _set_author(self, announcement_id: str, author: str) -> None:
        with self._tx() as conn:
            conn.execute("UPDATE announcements SET author = ? WHERE id = ?", (author, announcement_id))

    def _delete_row(self, announcement_id: str) -> None:
        with self._tx() as conn:
            conn.execute("DELETE FROM announcements WHERE id = ?", (announcement_id,))

    async def create(self, *, team_id: str, content: str, created_at: str, author: str) -> Announcement:
        a = Announcement(id=self._new_id(), team_id=team_id, content=content, created_at=created_at, author=author)
        await self._run(self._insert, a)
        return a

    async def update_author(self, announcement_id: str, author: str) -> None:
        await self._run(self._set_author, announcement_id, author)

    async def delete(self, announcement_id: str) -> None:
        await self._run(self._delete_row, announcement_id)

    async def list(self, team_id: str | None = None) -> list[Announcement]:
        return await self._run(self._select, team_id)
