# src/clippy_tasks/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.errors import (
    AnalysisError,
    CascadeDeleteError,
    ClippyError,
    NotFoundError,
    PermissionDeniedError,
    RepositoryError,
    ValidationError,
)
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def format_error(exc: ClippyError) -> str:
    """User-facing text for a domain error."""
    if isinstance(exc, PermissionDeniedError):
        if exc.authorized:
            return f"[DENIED] {exc} Ask: {exc.authorized}."
        return f"[DENIED] {exc}"
    if isinstance(exc, AnalysisError):
        return f"[ANALYZE] Analysis failed, retry. {exc}"
    if isinstance(exc, CascadeDeleteError):
        return (
            f"[STORAGE] Partially applied. Failed: {', '.join(exc.failed)}. "
            f"Done: {', '.join(exc.completed) or 'nothing'}. Retry, or run /repair."
        )
    if isinstance(exc, RepositoryError):
        return f"[STORAGE] {exc}. Nothing else was changed; retry."
    if isinstance(exc, NotFoundError):
        return f"[NOT FOUND] {exc}"
    if isinstance(exc, ValidationError):
        return f"[INVALID] {exc}"
    return f"[ERROR] {exc}"


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (offline=%s).", state.offline)
    _print_ts("[CONSOLE] Use /login <username> [display name] to start, /help for commands, /exit to quit.\n")
    if state.offline:
        _print_ts("[CONSOLE] No LLM API key configured: notes are analyzed in offline demo mode.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g. analysis)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> You: ")).strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Try /note <text> to analyze a note, or /help.")
            continue

        try:
            reply = await command_registry.handle(state, user_input, emit=emit)
        except ClippyError as exc:
            logger.info("Command failed: %s: %s", type(exc).__name__, exc)
            reply = format_error(exc)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            print(f"[{_ts_local()}] {reply}")

    logger.info("Console connector finished.")
