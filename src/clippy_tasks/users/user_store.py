# src/clippy_tasks/users/user_store.py

from __future__ import annotations

import logging
import secrets
import sqlite3
import string
import time
from dataclasses import dataclass
from pathlib import Path

from ..core.errors import NotFoundError, RepositoryError, ValidationError
from ..core.identity import ADMIN_SUFFIX, CurrentUser
from ..core.sqlite_base import SQLiteStore

logger = logging.getLogger(__name__)

_INVITE_ALPHABET = string.digits + string.ascii_uppercase


@dataclass(frozen=True, slots=True)
class User:
    """Session user: stable id, display name, invitation code."""

    username: str
    display_name: str
    invitation_code: str

    def as_current(self) -> CurrentUser:
        return CurrentUser(user_id=self.username, display_name=self.display_name)


def new_invite_code(length: int = 6) -> str:
    return "".join(secrets.choice(_INVITE_ALPHABET) for _ in range(length))


def check_display_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("display name is required")
    if name.endswith(ADMIN_SUFFIX):
        raise ValidationError(f"display name must not end with {ADMIN_SUFFIX.strip()!r}")
    return name


class UserStore(SQLiteStore):
    """
    User directory.

    Credentials are out of scope; this only maps usernames to display names
    and invitation codes, which is what team joins need.
    """

    label = "UserStore"

    def __init__(self, db_path: str | Path = "users.sqlite3", *, invite_code_length: int = 6) -> None:
        self._code_length = invite_code_length
        super().__init__(db_path)
        logger.info("UserStore ready db=%s", self._db_path)

    def _create_schema(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                username TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                invitation_code TEXT NOT NULL UNIQUE,
                created_at REAL NOT NULL
            )
            """
        )

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            username=str(row["username"]),
            display_name=str(row["display_name"]),
            invitation_code=str(row["invitation_code"]),
        )

    def _insert(self, username: str, display_name: str) -> User:
        for _ in range(8):
            code = new_invite_code(self._code_length)
            try:
                with self._tx() as conn:
                    conn.execute(
                        "INSERT INTO users(username, display_name, invitation_code, created_at) VALUES (?, ?, ?, ?)",
                        (username, display_name, code, time.time()),
                    )
                return User(username=username, display_name=display_name, invitation_code=code)
            except sqlite3.IntegrityError as exc:
                if "username" in str(exc):
                    raise ValidationError(f"username {username!r} is already taken") from exc
                logger.debug("Invitation code collision, retrying.")
        raise RepositoryError("could not allocate a unique invitation code")

    def _select_one(self, column: str, value: str) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute(f"SELECT * FROM users WHERE {column} = ?", (value,)).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def _set_display_name(self, username: str, display_name: str) -> int:
        with self._tx() as conn:
            return conn.execute(
                "UPDATE users SET display_name = ? WHERE username = ?", (display_name, username)
            ).rowcount

    def _delete_row(self, username: str) -> None:
        with self._tx() as conn:
            conn.execute("DELETE FROM users WHERE username = ?", (username,))

    # ---- public API ----

    async def register(self, username: str, display_name: str) -> User:
        username = (username or "").strip()
        if not username:
            raise ValidationError("username is required")
        user = await self._run(self._insert, username, check_display_name(display_name))
        logger.info("User registered username=%s", username)
        return user

    async def get(self, username: str) -> User | None:
        return await self._run(self._select_one, "username", username)

    async def resolve_invite_code(self, code: str) -> str | None:
        user = await self._run(self._select_one, "invitation_code", (code or "").strip().upper())
        return user.display_name if user else None

    async def update_display_name(self, username: str, display_name: str) -> None:
        n = await self._run(self._set_display_name, username, check_display_name(display_name))
        if n == 0:
            raise NotFoundError(f"user {username} not found")

    async def delete(self, username: str) -> None:
        await self._run(self._delete_row, username)
        logger.info("User deleted username=%s", username)
