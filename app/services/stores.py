"""Lookup and mutation collaborators used while processing a push.

Each collaborator is a ``Protocol`` so the push pipeline can run against
the SQLAlchemy implementations below in production and against in-memory
doubles in tests.  Misses raise the ``NotFoundError`` subclasses from
``app.exceptions``; any other failure is left to propagate.
"""

from __future__ import annotations

from typing import Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import (
    Comment,
    CommentType,
    Issue,
    Repository,
    User,
    Watch,
    now_unix,
)
from app.exceptions import IssueNotExist, RepoNotExist, UserNotExist

logger = structlog.get_logger()


class UserStore(Protocol):
    async def get_by_username(self, name: str) -> User: ...

    async def get_by_email(self, email: str) -> User: ...


class RepoStore(Protocol):
    async def get_by_name(self, owner_id: int, name: str) -> Repository: ...

    async def mark_pushed(self, repo: Repository) -> None:
        """Clear the bare flag and refresh the last-updated timestamp."""
        ...


class WatchStore(Protocol):
    async def list_by_repo(self, repo_id: int) -> list[Watch]: ...


class IssueStore(Protocol):
    async def get_by_ref(self, ref: str) -> Issue:
        """Resolve ``owner/repo#index``."""
        ...

    async def get_by_index(self, repo_id: int, index: int) -> Issue: ...

    async def create_ref_comment(
        self, doer: User, repo: Repository, issue: Issue, content: str, commit_sha: str
    ) -> None: ...

    async def change_status(
        self, doer: User, repo: Repository, issue: Issue, *, is_closed: bool
    ) -> None: ...


class SqlUserStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_username(self, name: str) -> User:
        result = await self._session.execute(select(User).where(User.lower_name == name.lower()))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotExist(name=name)
        return user

    async def get_by_email(self, email: str) -> User:
        if not email:
            raise UserNotExist(email=email)
        result = await self._session.execute(
            select(User).where(
                func.lower(User.email) == email.lower(),
                User.is_organization.is_(False),
            )
        )
        user = result.scalars().first()
        if user is None:
            raise UserNotExist(email=email)
        return user


class SqlRepoStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_name(self, owner_id: int, name: str) -> Repository:
        result = await self._session.execute(
            select(Repository).where(
                Repository.owner_id == owner_id,
                Repository.lower_name == name.lower(),
            )
        )
        repo = result.scalar_one_or_none()
        if repo is None:
            raise RepoNotExist(owner_id=owner_id, name=name)
        return repo

    async def mark_pushed(self, repo: Repository) -> None:
        repo.is_bare = False
        repo.updated_unix = now_unix()
        await self._session.flush()


class SqlWatchStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_by_repo(self, repo_id: int) -> list[Watch]:
        result = await self._session.execute(
            select(Watch).where(Watch.repo_id == repo_id).order_by(Watch.id)
        )
        return list(result.scalars().all())


def split_issue_ref(ref: str) -> tuple[str, str, int]:
    """Split ``owner/repo#index`` into its parts.

    Raises:
        IssueNotExist: If the reference is not of that shape.
    """
    full_name, sep, index = ref.rpartition("#")
    owner, slash, repo_name = full_name.partition("/")
    if not sep or not slash or not owner or not repo_name or not index.isdigit():
        raise IssueNotExist(ref)
    return owner, repo_name, int(index)


class SqlIssueStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_ref(self, ref: str) -> Issue:
        owner, repo_name, index = split_issue_ref(ref)
        result = await self._session.execute(
            select(Issue)
            .join(Repository, Repository.id == Issue.repo_id)
            .join(User, User.id == Repository.owner_id)
            .where(
                User.lower_name == owner.lower(),
                Repository.lower_name == repo_name.lower(),
                Issue.index == index,
            )
        )
        issue = result.scalar_one_or_none()
        if issue is None:
            raise IssueNotExist(ref)
        return issue

    async def get_by_index(self, repo_id: int, index: int) -> Issue:
        result = await self._session.execute(
            select(Issue).where(Issue.repo_id == repo_id, Issue.index == index)
        )
        issue = result.scalar_one_or_none()
        if issue is None:
            raise IssueNotExist(f"{repo_id}#{index}")
        return issue

    async def create_ref_comment(
        self, doer: User, repo: Repository, issue: Issue, content: str, commit_sha: str
    ) -> None:
        """Add a commit-reference comment unless this commit already referenced the issue."""
        result = await self._session.execute(
            select(func.count())
            .select_from(Comment)
            .where(
                Comment.issue_id == issue.id,
                Comment.type == CommentType.COMMIT_REF,
                Comment.commit_sha == commit_sha,
            )
        )
        if result.scalar_one() > 0:
            return

        self._session.add(
            Comment(
                type=CommentType.COMMIT_REF,
                poster_id=doer.id,
                issue_id=issue.id,
                commit_sha=commit_sha,
                content=content,
            )
        )
        await self._session.flush()

    async def change_status(
        self, doer: User, repo: Repository, issue: Issue, *, is_closed: bool
    ) -> None:
        if issue.is_closed == is_closed:
            return

        issue.is_closed = is_closed
        issue.updated_unix = now_unix()
        if issue.repo_id == repo.id:
            repo.num_closed_issues = (repo.num_closed_issues or 0) + (1 if is_closed else -1)
        self._session.add(
            Comment(
                type=CommentType.CLOSE if is_closed else CommentType.REOPEN,
                poster_id=doer.id,
                issue_id=issue.id,
            )
        )
        await self._session.flush()
        logger.info(
            "issue_status_changed",
            issue_id=issue.id,
            index=issue.index,
            is_closed=is_closed,
            doer=doer.name,
        )
