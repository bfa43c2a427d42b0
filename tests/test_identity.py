# tests/test_identity.py

from __future__ import annotations

import pytest

from clippy_tasks.core.identity import admin_entry, assignee_matches, is_exact_name, is_unassigned, renamed, strip_admin


@pytest.mark.parametrize(
    ("assignee", "name", "expected"),
    [
        ("Kim (Admin)", "Kim", True),
        ("kim", "KIM", True),
        ("me", "Lee", True),
        ("나", "Lee", True),
        ("Kim", "Lee", False),
        ("Kim Min-su", "Kim", True),
        ("", "Kim", False),
        ("Kim", "", False),
    ],
)
def test_assignee_match_rule(assignee: str, name: str, expected: bool) -> None:
    assert assignee_matches(assignee, name) is expected


def test_admin_annotation_helpers() -> None:
    entry = admin_entry("Kim")
    assert entry == "Kim (Admin)"
    assert strip_admin(entry) == "Kim"
    assert strip_admin("Lee") == "Lee"
    assert is_exact_name(entry, "Kim")
    assert not is_exact_name("Kim Min-su", "Kim")


def test_renamed_is_exact_and_keeps_annotation() -> None:
    assert renamed("Kim", "Kim", "Kim2") == "Kim2"
    assert renamed("Kim (Admin)", "Kim", "Kim2") == "Kim2 (Admin)"
    assert renamed("Kim Min-su", "Kim", "Kim2") is None
    assert renamed("kim", "Kim", "Kim2") is None


def test_unassigned_markers() -> None:
    assert is_unassigned("Unassigned")
    assert is_unassigned("미지정")
    assert not is_unassigned("Kim")
