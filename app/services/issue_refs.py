"""Issue references and close/reopen keywords in commit messages.

Three independent pattern classes are scanned in every message:

* plain references: any token ending in ``#<digits>``
* close keywords: ``close``, ``fixes``, ``resolved`` ... followed by a token
* reopen keywords: ``reopen``, ``reopens``, ``reopened`` followed by a token

A reference starting with ``#`` is qualified with the pushed repository's
full name; a reference without ``/`` (``user#1`` style) is not supported
and skipped.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Sequence

from app.db.models import Issue, Repository, User
from app.exceptions import IssueNotExist
from app.services.push_commits import PushCommit
from app.services.snapshots import repo_link
from app.services.stores import IssueStore

# Same keyword sets as GitHub's closing keywords.
ISSUE_CLOSE_KEYWORDS = (
    "close",
    "closes",
    "closed",
    "fix",
    "fixes",
    "fixed",
    "resolve",
    "resolves",
    "resolved",
)
ISSUE_REOPEN_KEYWORDS = ("reopen", "reopens", "reopened")


def _keywords_pattern(words: Sequence[str]) -> re.Pattern[str]:
    return re.compile(rf"(?ai)(?:{'|'.join(words)}) \S+")


ISSUE_REFERENCE_PATTERN = re.compile(r"(?ai)(?:^| )\S*#\d+")
ISSUE_CLOSE_PATTERN = _keywords_pattern(ISSUE_CLOSE_KEYWORDS)
ISSUE_REOPEN_PATTERN = _keywords_pattern(ISSUE_REOPEN_KEYWORDS)

_NON_DIGIT_SUFFIX = re.compile(r"\D+$", re.ASCII)


def _normalize(ref: str, repo_full_name: str) -> str | None:
    ref = _NON_DIGIT_SUFFIX.sub("", ref)
    if not ref:
        return None
    if ref.startswith("#"):
        return f"{repo_full_name}{ref}"
    if "/" not in ref:
        # user#123 syntax is not supported
        return None
    return ref


def find_issue_references(message: str, repo_full_name: str) -> list[str]:
    """Return qualified plain references in message order."""
    refs = []
    for match in ISSUE_REFERENCE_PATTERN.findall(message):
        ref = _normalize(match.strip(), repo_full_name)
        if ref is not None:
            refs.append(ref)
    return refs


def _find_keyword_references(
    pattern: re.Pattern[str], message: str, repo_full_name: str
) -> list[str]:
    refs = []
    for match in pattern.findall(message):
        ref = _normalize(match[match.index(" ") + 1 :], repo_full_name)
        if ref is not None:
            refs.append(ref)
    return refs


def find_close_references(message: str, repo_full_name: str) -> list[str]:
    """Return qualified references following a close keyword."""
    return _find_keyword_references(ISSUE_CLOSE_PATTERN, message, repo_full_name)


def find_reopen_references(message: str, repo_full_name: str) -> list[str]:
    """Return qualified references following a reopen keyword."""
    return _find_keyword_references(ISSUE_REOPEN_PATTERN, message, repo_full_name)


def commit_ref_comment(repo: Repository, commit: PushCommit) -> str:
    """Link to the commit labelled with its first message line.

    An ellipsis marks messages of more than two lines.
    """
    lines = commit.message.split("\n")
    short = lines[0]
    if len(lines) > 2:
        short += "..."
    return f'<a href="{repo_link(repo)}/commit/{commit.sha1}">{short}</a>'


async def _new_issues(
    issues: IssueStore, refs: Sequence[str], marked: set[int]
) -> AsyncIterator[Issue]:
    """Yield issues for ``refs`` that are not yet in ``marked``, marking them.

    Missing issues are skipped; any other lookup failure propagates.
    """
    for ref in refs:
        try:
            issue = await issues.get_by_ref(ref)
        except IssueNotExist:
            continue
        if issue.id in marked:
            continue
        marked.add(issue.id)
        yield issue


async def update_commit_references_to_issues(
    issues: IssueStore,
    doer: User,
    repo: Repository,
    commits: Sequence[PushCommit],
) -> None:
    """Comment on, close and reopen issues referenced by pushed commits.

    Commits are walked from the last element to the first, i.e. oldest
    first for a hook-ordered batch. Only issues of ``repo`` change state;
    issues elsewhere still receive the reference comment.
    """
    full_name = repo.full_name
    for commit in reversed(commits):
        marked: set[int] = set()
        refs = find_issue_references(commit.message, full_name)
        async for issue in _new_issues(issues, refs, marked):
            await issues.create_ref_comment(
                doer, repo, issue, commit_ref_comment(repo, commit), commit.sha1
            )

        # Close and reopen share one set: an issue cannot be both in one commit.
        marked = set()
        refs = find_close_references(commit.message, full_name)
        async for issue in _new_issues(issues, refs, marked):
            if issue.repo_id != repo.id or issue.is_closed:
                continue
            await issues.change_status(doer, repo, issue, is_closed=True)

        refs = find_reopen_references(commit.message, full_name)
        async for issue in _new_issues(issues, refs, marked):
            if issue.repo_id != repo.id or not issue.is_closed:
                continue
            await issues.change_status(doer, repo, issue, is_closed=False)
