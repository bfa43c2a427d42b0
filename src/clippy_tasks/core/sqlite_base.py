# src/clippy_tasks/core/sqlite_base.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, TypeVar

from .errors import RepositoryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLiteStore:
    """
    Base for the SQLite-backed repositories.

    - each call opens its own short-lived connection (thread-safe by construction);
    - blocking work runs in a worker thread so repository calls are awaitable;
    - sqlite3 errors surface as RepositoryError.

    Subclasses implement `_create_schema(cur)`.
    """

    label = "store"

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._get_conn()
        try:
            self._create_schema(conn.cursor())
            conn.commit()
        finally:
            conn.close()

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _create_schema(self, cur: sqlite3.Cursor) -> None:
        raise NotImplementedError

    def _add_missing_columns(self, cur: sqlite3.Cursor, table: str, columns: dict[str, str]) -> None:
        """Migration helper: ALTER TABLE only for columns an older DB lacks."""
        cur.execute(f"PRAGMA table_info({table})")
        existing = {row["name"] for row in cur.fetchall()}
        for name, decl in columns.items():
            if name in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
            logger.info("%s migration: added column %s.%s", self.label, table, name)

    @contextlib.contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        """One connection, one transaction: commit on success, rollback on error."""
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            logger.warning("%s: sqlite error in %s: %s", self.label, getattr(fn, "__name__", fn), exc)
            raise RepositoryError(f"{self.label}: {exc}") from exc
