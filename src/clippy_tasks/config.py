# src/clippy_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Legacy module-level constants are exported for quick scripts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "CLIPPY"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv() -> None:
    """Load .env from the working directory if present. Real env vars win."""
    load_dotenv(override=False)


_load_dotenv()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool

    # ---- LLM (OpenAI-compatible) ----
    openai_api_key: Optional[str]
    openai_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    teams_db_path: Path
    users_db_path: Path

    # ---- Behaviour tuning ----
    deadline_nearing_days: int
    invite_code_length: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default=_env(_k("APP_TITLE"), "clippy")) or "clippy"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _env(_k("OPENAI_BASE_URL"), "https://api.openai.com/v1")

        http_referer = _env(_k("HTTP_REFERER"), "")
        title = _env(_k("APP_TITLE"), app_name)

        # OpenRouter-style metadata headers; harmless for other providers.
        extra_headers: Dict[str, str] = {"X-Title": title}
        if http_referer:
            extra_headers["HTTP-Referer"] = http_referer

        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o-mini", "gpt-4o-audio-preview"])

        llm_connect_timeout_seconds = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_read_timeout_seconds = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 90.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/clippy"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        teams_db_path = _env_path(_k("TEAMS_DB_PATH"), data_dir / "teams.sqlite3")
        users_db_path = _env_path(_k("USERS_DB_PATH"), data_dir / "users.sqlite3")

        deadline_nearing_days = _env_int(_k("DEADLINE_NEARING_DAYS"), 2)
        invite_code_length = _env_int(_k("INVITE_CODE_LENGTH"), 6)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_connect_timeout_seconds=llm_connect_timeout_seconds,
            llm_read_timeout_seconds=max(llm_read_timeout_seconds, llm_connect_timeout_seconds),
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            teams_db_path=teams_db_path,
            users_db_path=users_db_path,
            deadline_nearing_days=max(0, deadline_nearing_days),
            invite_code_length=max(4, invite_code_length),
        )


_DB_FILES: Dict[str, str] = {
    "tasks_db_path": "tasks.sqlite3",
    "teams_db_path": "teams.sqlite3",
    "users_db_path": "users.sqlite3",
}


def apply_local_overrides(settings: Settings, local: Any) -> Settings:
    """Return `settings` with the safe overrides found on a config_local module.

    A DATA_DIR override also moves every database that still sits at its
    default location under the old data dir. Explicit *_DB_PATH values stay.
    """
    changes: Dict[str, Any] = {}
    if hasattr(local, "CONSOLE_ENABLED"):
        changes["console_enabled"] = bool(local.CONSOLE_ENABLED)
    if hasattr(local, "LLM_MODELS"):
        changes["llm_models"] = list(local.LLM_MODELS)
    if hasattr(local, "DATA_DIR"):
        data_dir = Path(local.DATA_DIR)
        changes["data_dir"] = data_dir
        for field, filename in _DB_FILES.items():
            if getattr(settings, field) == settings.data_dir / filename:
                changes[field] = data_dir / filename
    return replace(settings, **changes) if changes else settings


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env for secrets; use config_local.py only for safe overrides.
try:
    import config_local as _config_local  # type: ignore
except ImportError:
    pass
else:
    SETTINGS = apply_local_overrides(SETTINGS, _config_local)


def get_settings() -> Settings:
    return SETTINGS


# --------------------------------------------------------------------------------------
# Module-level constants.
# --------------------------------------------------------------------------------------

APP_NAME = SETTINGS.app_name
LOG_LEVEL = SETTINGS.log_level

CONSOLE_ENABLED = SETTINGS.console_enabled

OPENAI_API_KEY = SETTINGS.openai_api_key
OPENAI_BASE_URL = SETTINGS.openai_base_url
LLM_MODELS = SETTINGS.llm_models
EXTRA_HEADERS = SETTINGS.extra_headers

DATA_DIR = SETTINGS.data_dir
TASKS_DB_PATH = SETTINGS.tasks_db_path
TEAMS_DB_PATH = SETTINGS.teams_db_path
USERS_DB_PATH = SETTINGS.users_db_path

DEADLINE_NEARING_DAYS = SETTINGS.deadline_nearing_days
INVITE_CODE_LENGTH = SETTINGS.invite_code_length
