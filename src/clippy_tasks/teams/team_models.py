# src/clippy_tasks/teams/team_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..core.identity import admin_entry, strip_admin


@dataclass(slots=True)
class Team:
    id: str
    name: str
    # Ordered display-name snapshots; the creator's entry carries the admin suffix.
    members: list[str] = field(default_factory=list)
    created_by: str = ""

    def has_member(self, display_name: str) -> bool:
        return display_name in self.members or admin_entry(display_name) in self.members

    def member_names(self) -> list[str]:
        """Roster without admin annotations (valid review reassignment targets)."""
        return [strip_admin(m) for m in self.members]

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": list(self.members),
            "createdBy": self.created_by,
        }


@dataclass(frozen=True, slots=True)
class Announcement:
    id: str
    team_id: str
    content: str
    created_at: str  # YYYY-MM-DD
    author: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "teamId": self.team_id,
            "content": self.content,
            "createdAt": self.created_at,
            "author": self.author,
        }
