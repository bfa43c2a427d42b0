# src/clippy_tasks/core/identity.py

"""
Display-name identity helpers.

Assignees, roster entries and announcement authors are display-name
snapshots captured by value, not references to a user id. Two rules operate
on them and they are intentionally different:

- the assignee-match rule (permission checks, leaving a team, "my tasks"):
  case-insensitive, self-reference markers or substring of the actor's name;
- the exact rule (rename propagation): plain name or name + admin suffix.

Substring matching is an accepted approximation, not a security boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

ADMIN_SUFFIX = " (Admin)"

# "me" and its Korean equivalent, as produced by the analyzer for the speaker.
SELF_MARKERS: frozenset[str] = frozenset({"me", "나"})

UNASSIGNED_MARKERS: frozenset[str] = frozenset({"unassigned", "미지정"})


@dataclass(frozen=True, slots=True)
class CurrentUser:
    """Resolved identity of the acting user."""

    user_id: str
    display_name: str


def _fold(s: str | None) -> str:
    return (s or "").strip().casefold()


def assignee_matches(assignee: str | None, display_name: str | None) -> bool:
    """True if `assignee` refers to the user called `display_name`."""
    a = _fold(assignee)
    if a in SELF_MARKERS:
        return True
    name = _fold(display_name)
    return bool(name) and name in a


def is_unassigned(assignee: str | None) -> bool:
    return _fold(assignee) in UNASSIGNED_MARKERS


def admin_entry(display_name: str) -> str:
    return f"{display_name}{ADMIN_SUFFIX}"


def is_admin_entry(entry: str) -> bool:
    return entry.endswith(ADMIN_SUFFIX)


def strip_admin(entry: str) -> str:
    if entry.endswith(ADMIN_SUFFIX):
        return entry[: -len(ADMIN_SUFFIX)]
    return entry


def is_exact_name(value: str | None, name: str) -> bool:
    """Exact match against `name` or its admin-annotated form."""
    return value == name or value == admin_entry(name)


def renamed(value: str, old_name: str, new_name: str) -> str | None:
    """
    Rewrite `value` if it is exactly `old_name` (optionally admin-annotated).

    Returns the new value, or None when `value` is not an exact match.
    """
    if value == old_name:
        return new_name
    if value == admin_entry(old_name):
        return admin_entry(new_name)
    return None
