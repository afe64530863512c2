"""Tests for ref-change classification."""

import pytest

from app.services.refs import (
    EMPTY_COMMIT_ID,
    RefChangeKind,
    RefType,
    classify_ref_change,
    ref_short_name,
)

OLD = "a" * 40
NEW = "b" * 40


class TestClassifyBranch:
    def test_new_branch_is_create(self) -> None:
        change = classify_ref_change(EMPTY_COMMIT_ID, NEW, "refs/heads/feature/x")
        assert change.kind is RefChangeKind.CREATE
        assert change.is_new_ref
        assert not change.is_deleted_ref
        assert change.ref_name == "feature/x"

    def test_deleted_branch_is_delete(self) -> None:
        change = classify_ref_change(OLD, EMPTY_COMMIT_ID, "refs/heads/main")
        assert change.kind is RefChangeKind.DELETE
        assert change.is_deleted_ref

    def test_update_is_push(self) -> None:
        change = classify_ref_change(OLD, NEW, "refs/heads/main")
        assert change.kind is RefChangeKind.PUSH
        assert change.ref_type is RefType.BRANCH

    def test_deletion_wins_when_both_sides_empty(self) -> None:
        change = classify_ref_change(EMPTY_COMMIT_ID, EMPTY_COMMIT_ID, "refs/heads/main")
        assert change.kind is RefChangeKind.DELETE


class TestClassifyTag:
    def test_new_tag_is_create(self) -> None:
        change = classify_ref_change(EMPTY_COMMIT_ID, NEW, "refs/tags/v1.0", RefType.TAG)
        assert change.kind is RefChangeKind.CREATE
        assert change.ref_name == "v1.0"

    def test_moved_tag_is_still_create(self) -> None:
        """Tags are immutable: there is no push case for them."""
        change = classify_ref_change(OLD, NEW, "refs/tags/v1.0", RefType.TAG)
        assert change.kind is RefChangeKind.CREATE

    def test_deleted_tag_is_delete(self) -> None:
        change = classify_ref_change(OLD, EMPTY_COMMIT_ID, "refs/tags/v1.0", RefType.TAG)
        assert change.kind is RefChangeKind.DELETE


@pytest.mark.parametrize(
    ("full", "short"),
    [
        ("refs/heads/main", "main"),
        ("refs/heads/feature/x", "feature/x"),
        ("refs/tags/v2.1.0", "v2.1.0"),
        ("refs/notes/commits", "notes/commits"),
        ("main", "main"),
    ],
)
def test_ref_short_name(full: str, short: str) -> None:
    assert ref_short_name(full) == short


def test_empty_commit_id_is_forty_zeros() -> None:
    assert EMPTY_COMMIT_ID == "0000000000000000000000000000000000000000"
