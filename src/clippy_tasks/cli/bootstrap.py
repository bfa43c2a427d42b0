# src/clippy_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (LLM/analyzer/stores/services).
"""

from __future__ import annotations

import logging

from ..analysis.analyzer import LLMAnalyzer
from ..config import get_settings
from ..core.ports import LLMClient
from ..core.state import AppState, SessionIdentity
from ..llm.client import OpenAICompatibleLLMClient
from ..llm.offline import OfflineLLMClient
from ..tasks.lifecycle import TaskLifecycleGuard
from ..tasks.review import ReviewCurator
from ..tasks.task_store import TaskStore
from ..teams.membership import TeamMembershipManager
from ..teams.team_store import AnnouncementStore, TeamStore
from ..users.profile import ProfilePropagation
from ..users.user_store import UserStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.teams_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_state(settings, llm: LLMClient, *, offline: bool = False) -> AppState:
    """Wire stores and services around an already chosen LLM client."""
    task_store = TaskStore(settings.tasks_db_path)
    team_store = TeamStore(settings.teams_db_path)
    announcement_store = AnnouncementStore(settings.teams_db_path)
    user_store = UserStore(settings.users_db_path, invite_code_length=settings.invite_code_length)
    identity = SessionIdentity()

    return AppState(
        settings=settings,
        llm=llm,
        analyzer=LLMAnalyzer(llm),
        task_store=task_store,
        team_store=team_store,
        announcement_store=announcement_store,
        user_store=user_store,
        identity=identity,
        curator=ReviewCurator(task_store, identity),
        guard=TaskLifecycleGuard(task_store),
        membership=TeamMembershipManager(team_store, task_store, announcement_store, user_store),
        profile=ProfilePropagation(task_store, team_store, announcement_store, user_store),
        offline=offline,
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    llm_client: LLMClient
    offline = False
    try:
        llm_client = OpenAICompatibleLLMClient(settings)
    except RuntimeError as exc:
        # Fallback for demos / local runs without an API key.
        logger.info("LLM client unavailable (%s); using offline analyzer.", exc)
        llm_client = OfflineLLMClient()
        offline = True

    return build_state(settings, llm_client, offline=offline)
