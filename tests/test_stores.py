"""Tests for the SQLAlchemy-backed lookup and mutation stores."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fakes import make_issue, make_repo, make_user

from app.db.models import Comment, CommentType
from app.exceptions import IssueNotExist, RepoNotExist, UserNotExist
from app.services.stores import (
    SqlIssueStore,
    SqlRepoStore,
    SqlUserStore,
    SqlWatchStore,
    split_issue_ref,
)


def _session_returning(**result_attrs) -> AsyncMock:
    result_mock = MagicMock()
    for name, value in result_attrs.items():
        getattr(result_mock, name).return_value = value

    session = AsyncMock()
    session.execute.return_value = result_mock
    session.add = MagicMock()
    return session


@pytest.mark.parametrize(
    ("ref", "parts"),
    [
        ("acme/widgets#12", ("acme", "widgets", 12)),
        ("Acme/Widgets#1", ("Acme", "Widgets", 1)),
    ],
)
def test_split_issue_ref(ref: str, parts: tuple[str, str, int]) -> None:
    assert split_issue_ref(ref) == parts


@pytest.mark.parametrize("ref", ["widgets#1", "acme/widgets", "/widgets#1", "acme/#1", "a/b#x"])
def test_split_issue_ref_rejects_malformed(ref: str) -> None:
    with pytest.raises(IssueNotExist):
        split_issue_ref(ref)


@pytest.mark.anyio
async def test_user_by_username_found():
    alice = make_user(2, "alice")
    session = _session_returning(scalar_one_or_none=alice)

    assert await SqlUserStore(session).get_by_username("Alice") is alice


@pytest.mark.anyio
async def test_user_by_username_missing():
    session = _session_returning(scalar_one_or_none=None)

    with pytest.raises(UserNotExist, match="name: ghost"):
        await SqlUserStore(session).get_by_username("ghost")


@pytest.mark.anyio
async def test_user_by_empty_email_skips_query():
    session = _session_returning()

    with pytest.raises(UserNotExist):
        await SqlUserStore(session).get_by_email("")

    session.execute.assert_not_awaited()


@pytest.mark.anyio
async def test_repo_missing_raises():
    session = _session_returning(scalar_one_or_none=None)

    with pytest.raises(RepoNotExist, match="owner_id: 1, name: widgets"):
        await SqlRepoStore(session).get_by_name(1, "widgets")


@pytest.mark.anyio
async def test_mark_pushed_clears_bare_flag():
    repo = make_repo(10, make_user(1, "acme"), "widgets", updated_unix=0)
    session = _session_returning()

    await SqlRepoStore(session).mark_pushed(repo)

    assert repo.is_bare is False
    assert repo.updated_unix > 0
    session.flush.assert_awaited_once()


@pytest.mark.anyio
async def test_watches_listed():
    watches = [MagicMock(user_id=3), MagicMock(user_id=4)]
    session = AsyncMock()
    result_mock = MagicMock()
    result_mock.scalars.return_value.all.return_value = watches
    session.execute.return_value = result_mock

    assert await SqlWatchStore(session).list_by_repo(10) == watches


@pytest.mark.anyio
async def test_issue_by_malformed_ref_skips_query():
    session = _session_returning()

    with pytest.raises(IssueNotExist):
        await SqlIssueStore(session).get_by_ref("alice#3")

    session.execute.assert_not_awaited()


@pytest.mark.anyio
async def test_issue_by_ref_missing():
    session = _session_returning(scalar_one_or_none=None)

    with pytest.raises(IssueNotExist, match=r"acme/widgets#99"):
        await SqlIssueStore(session).get_by_ref("acme/widgets#99")


@pytest.mark.anyio
async def test_ref_comment_created_once_per_commit():
    acme = make_user(1, "acme")
    repo = make_repo(10, acme, "widgets")
    issue = make_issue(100, repo, 1)
    session = _session_returning(scalar_one=0)

    await SqlIssueStore(session).create_ref_comment(acme, repo, issue, "<a>x</a>", "a" * 40)

    comment = session.add.call_args.args[0]
    assert isinstance(comment, Comment)
    assert comment.type == CommentType.COMMIT_REF
    assert comment.commit_sha == "a" * 40
    session.flush.assert_awaited_once()


@pytest.mark.anyio
async def test_ref_comment_skipped_when_already_present():
    acme = make_user(1, "acme")
    repo = make_repo(10, acme, "widgets")
    session = _session_returning(scalar_one=1)

    await SqlIssueStore(session).create_ref_comment(
        acme, repo, make_issue(100, repo, 1), "<a>x</a>", "a" * 40
    )

    session.add.assert_not_called()


@pytest.mark.anyio
async def test_change_status_closes_and_counts():
    acme = make_user(1, "acme")
    repo = make_repo(10, acme, "widgets", num_closed_issues=2)
    issue = make_issue(100, repo, 1)
    session = _session_returning()

    await SqlIssueStore(session).change_status(acme, repo, issue, is_closed=True)

    assert issue.is_closed is True
    assert repo.num_closed_issues == 3
    assert session.add.call_args.args[0].type == CommentType.CLOSE


@pytest.mark.anyio
async def test_change_status_reopen():
    acme = make_user(1, "acme")
    repo = make_repo(10, acme, "widgets", num_closed_issues=1)
    issue = make_issue(100, repo, 1, is_closed=True)
    session = _session_returning()

    await SqlIssueStore(session).change_status(acme, repo, issue, is_closed=False)

    assert issue.is_closed is False
    assert repo.num_closed_issues == 0
    assert session.add.call_args.args[0].type == CommentType.REOPEN


@pytest.mark.anyio
async def test_change_status_noop_when_unchanged():
    acme = make_user(1, "acme")
    repo = make_repo(10, acme, "widgets")
    session = _session_returning()

    await SqlIssueStore(session).change_status(
        acme, repo, make_issue(100, repo, 1, is_closed=True), is_closed=True
    )

    session.add.assert_not_called()
    session.flush.assert_not_awaited()
