# tests/test_config.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from clippy_tasks.config import Settings, apply_local_overrides


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLIPPY_LLM_MODELS", "model-a, model-b")
    monkeypatch.setenv("CLIPPY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CLIPPY_INVITE_CODE_LENGTH", "2")
    monkeypatch.setenv("CLIPPY_DEADLINE_NEARING_DAYS", "not-a-number")
    monkeypatch.setenv("CLIPPY_HTTP_REFERER", "https://example.org")
    monkeypatch.delenv("CLIPPY_TASKS_DB_PATH", raising=False)

    s = Settings.from_env()

    assert s.llm_models == ["model-a", "model-b"]
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.invite_code_length == 4
    assert s.deadline_nearing_days == 2
    assert s.extra_headers["HTTP-Referer"] == "https://example.org"


def test_local_data_dir_moves_default_databases(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLIPPY_DATA_DIR", str(tmp_path / "old"))
    monkeypatch.setenv("CLIPPY_USERS_DB_PATH", str(tmp_path / "shared" / "users.sqlite3"))
    monkeypatch.delenv("CLIPPY_TASKS_DB_PATH", raising=False)
    monkeypatch.delenv("CLIPPY_TEAMS_DB_PATH", raising=False)

    s = apply_local_overrides(Settings.from_env(), SimpleNamespace(DATA_DIR=tmp_path / "new"))

    assert s.data_dir == tmp_path / "new"
    assert s.tasks_db_path == tmp_path / "new" / "tasks.sqlite3"
    assert s.teams_db_path == tmp_path / "new" / "teams.sqlite3"
    # explicitly configured paths are left alone
    assert s.users_db_path == tmp_path / "shared" / "users.sqlite3"


def test_local_overrides_without_known_names_keep_settings() -> None:
    s = Settings.from_env()
    assert apply_local_overrides(s, SimpleNamespace(SOMETHING_ELSE=1)) is s
    assert apply_local_overrides(s, SimpleNamespace(LLM_MODELS=("m",))).llm_models == ["m"]
