# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from clippy_tasks.cli.bootstrap import build_state
from clippy_tasks.core.identity import CurrentUser
from clippy_tasks.core.state import AppState
from clippy_tasks.llm.offline import OfflineLLMClient
from clippy_tasks.tasks.task_store import TaskStore
from clippy_tasks.teams.team_store import AnnouncementStore, TeamStore
from clippy_tasks.users.user_store import UserStore

from .fakes import FakeIdentity, InMemoryAnnouncementRepo, InMemoryTaskRepo, InMemoryTeamRepo


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="clippy-test",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        teams_db_path=tmp_path / "teams.sqlite3",
        users_db_path=tmp_path / "users.sqlite3",
        # LLM
        llm_models=["offline"],
        # Tuning
        deadline_nearing_days=2,
        invite_code_length=6,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired with the offline LLM client.

    NOTE: We keep real SQLite stores here because their correctness is part
    of what we want to test.
    """
    return build_state(settings, OfflineLLMClient(), offline=True)


@pytest.fixture()
def task_store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def team_store(tmp_path: Path) -> TeamStore:
    return TeamStore(tmp_path / "teams.sqlite3")


@pytest.fixture()
def announcement_store(tmp_path: Path) -> AnnouncementStore:
    return AnnouncementStore(tmp_path / "teams.sqlite3")


@pytest.fixture()
def user_store(tmp_path: Path) -> UserStore:
    return UserStore(tmp_path / "users.sqlite3")


@pytest.fixture()
def kim() -> CurrentUser:
    return CurrentUser(user_id="u-kim", display_name="Kim")


@pytest.fixture()
def lee() -> CurrentUser:
    return CurrentUser(user_id="u-lee", display_name="Lee")


@pytest.fixture()
def task_repo() -> InMemoryTaskRepo:
    return InMemoryTaskRepo()


@pytest.fixture()
def team_repo() -> InMemoryTeamRepo:
    return InMemoryTeamRepo()


@pytest.fixture()
def announcement_repo() -> InMemoryAnnouncementRepo:
    return InMemoryAnnouncementRepo()


@pytest.fixture()
def identity(kim: CurrentUser) -> FakeIdentity:
    return FakeIdentity(kim)
