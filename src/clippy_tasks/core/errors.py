# src/clippy_tasks/core/errors.py

"""
Error taxonomy shared by the core services.

Services raise these; only connectors (console, future HTTP layer) turn them
into user-facing text.
"""

from __future__ import annotations

from collections.abc import Iterable


class ClippyError(Exception):
    """Base class for every error raised on purpose by clippy_tasks."""


class ValidationError(ClippyError):
    """Malformed input: a draft, a task field, a command argument."""


class PermissionDeniedError(ClippyError):
    """
    The acting user is not allowed to perform the operation.

    `authorized` names the party that is allowed (a task's current assignee,
    a team's creator id), so the caller can tell the user who to ask.
    """

    def __init__(self, message: str, *, authorized: str | None = None) -> None:
        super().__init__(message)
        self.authorized = authorized


class NotFoundError(ClippyError):
    """A referenced record (team, task, invitation code) does not exist."""


class RepositoryError(ClippyError):
    """A storage read/write failed."""


class CascadeDeleteError(RepositoryError):
    """
    A multi-collection delete finished only partially.

    There is no cross-collection transaction, so the caller must be told
    exactly which steps went through and which did not.
    """

    def __init__(
        self,
        message: str,
        *,
        completed: Iterable[str] = (),
        failed: Iterable[str] = (),
    ) -> None:
        self.completed = tuple(completed)
        self.failed = tuple(failed)
        detail = f"{message} (failed: {', '.join(self.failed) or '-'}; done: {', '.join(self.completed) or '-'})"
        super().__init__(detail)


class AnalysisError(ClippyError):
    """The analyzer could not produce a well-formed draft. Never partially staged."""
