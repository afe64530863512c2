"""SQLAlchemy ORM models for users, repositories, issues and the activity feed."""

import enum
import time

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class ActionType(enum.IntEnum):
    """Kind of an activity row.

    Values are persisted, so new members are only ever appended.
    """

    CREATE_REPO = 1
    RENAME_REPO = 2
    STAR_REPO = 3
    WATCH_REPO = 4
    COMMIT_REPO = 5
    CREATE_ISSUE = 6
    CREATE_PULL_REQUEST = 7
    TRANSFER_REPO = 8
    PUSH_TAG = 9
    COMMENT_ISSUE = 10
    MERGE_PULL_REQUEST = 11
    CLOSE_ISSUE = 12
    REOPEN_ISSUE = 13
    CLOSE_PULL_REQUEST = 14
    REOPEN_PULL_REQUEST = 15
    CREATE_BRANCH = 16
    DELETE_BRANCH = 17
    DELETE_TAG = 18
    FORK_REPO = 19
    MIRROR_SYNC_PUSH = 20
    MIRROR_SYNC_CREATE = 21
    MIRROR_SYNC_DELETE = 22


class CommentType(enum.IntEnum):
    COMMENT = 0
    REOPEN = 1
    CLOSE = 2
    ISSUE_REF = 3
    COMMIT_REF = 4
    PULL_REF = 5


def now_unix() -> int:
    return int(time.time())


class User(Base):
    """A user or organization account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    lower_name: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(255), default="")
    email: Mapped[str] = mapped_column(String(255), index=True)
    avatar: Mapped[str] = mapped_column(String(2048), default="")
    avatar_email: Mapped[str] = mapped_column(String(255), default="")
    use_custom_avatar: Mapped[bool] = mapped_column(Boolean, default=False)
    is_organization: Mapped[bool] = mapped_column(Boolean, default=False)
    created_unix: Mapped[int] = mapped_column(BigInteger, default=now_unix)


class Repository(Base):
    """A hosted git repository."""

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    lower_name: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(String(512), default="")
    website: Mapped[str] = mapped_column(String(2048), default="")
    default_branch: Mapped[str] = mapped_column(String(255), default="master")
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    is_unlisted: Mapped[bool] = mapped_column(Boolean, default=False)
    is_bare: Mapped[bool] = mapped_column(Boolean, default=True)
    is_fork: Mapped[bool] = mapped_column(Boolean, default=False)
    is_mirror: Mapped[bool] = mapped_column(Boolean, default=False)
    enable_issues: Mapped[bool] = mapped_column(Boolean, default=True)
    enable_external_tracker: Mapped[bool] = mapped_column(Boolean, default=False)
    num_watches: Mapped[int] = mapped_column(Integer, default=0)
    num_stars: Mapped[int] = mapped_column(Integer, default=0)
    num_forks: Mapped[int] = mapped_column(Integer, default=0)
    num_issues: Mapped[int] = mapped_column(Integer, default=0)
    num_closed_issues: Mapped[int] = mapped_column(Integer, default=0)
    created_unix: Mapped[int] = mapped_column(BigInteger, default=now_unix)
    updated_unix: Mapped[int] = mapped_column(BigInteger, default=now_unix)

    owner: Mapped[User] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("owner_id", "lower_name", name="uq_repositories_owner_lower_name"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.owner.name}/{self.name}"


class Watch(Base):
    """A user subscribed to a repository's activity."""

    __tablename__ = "watches"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), index=True
    )

    __table_args__ = (UniqueConstraint("user_id", "repo_id", name="uq_watches_user_repo"),)


class Issue(Base):
    """An issue or pull request of a repository, addressed by its per-repo index."""

    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    repo_id: Mapped[int] = mapped_column(ForeignKey("repositories.id", ondelete="CASCADE"))
    index: Mapped[int] = mapped_column(BigInteger)
    poster_id: Mapped[int] = mapped_column(BigInteger)
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text, default="")
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    is_pull: Mapped[bool] = mapped_column(Boolean, default=False)
    created_unix: Mapped[int] = mapped_column(BigInteger, default=now_unix)
    updated_unix: Mapped[int] = mapped_column(BigInteger, default=now_unix)

    __table_args__ = (UniqueConstraint("repo_id", "index", name="uq_issues_repo_index"),)


class Comment(Base):
    """A timeline entry on an issue: plain comment, state change or reference."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    type: Mapped[int] = mapped_column(Integer)
    poster_id: Mapped[int] = mapped_column(BigInteger)
    issue_id: Mapped[int] = mapped_column(
        ForeignKey("issues.id", ondelete="CASCADE"), index=True
    )
    commit_sha: Mapped[str] = mapped_column(String(64), default="")
    content: Mapped[str] = mapped_column(Text, default="")
    created_unix: Mapped[int] = mapped_column(BigInteger, default=now_unix)


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    org_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))


class TeamUser(Base):
    __tablename__ = "team_users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    org_id: Mapped[int] = mapped_column(BigInteger, index=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"))
    uid: Mapped[int] = mapped_column(BigInteger)

    __table_args__ = (UniqueConstraint("team_id", "uid", name="uq_team_users_team_uid"),)


class TeamRepo(Base):
    __tablename__ = "team_repos"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    org_id: Mapped[int] = mapped_column(BigInteger, index=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"))
    repo_id: Mapped[int] = mapped_column(BigInteger)

    __table_args__ = (UniqueConstraint("team_id", "repo_id", name="uq_team_repos_team_repo"),)


class Action(Base):
    """One activity row addressed to a single recipient.

    Owner and repository names are copied at write time so that later
    renames or transfers do not rewrite history.
    """

    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, index=True)  # recipient
    op_type: Mapped[int] = mapped_column(Integer)
    act_user_id: Mapped[int] = mapped_column(BigInteger)
    act_user_name: Mapped[str] = mapped_column(String(255))
    repo_id: Mapped[int] = mapped_column(BigInteger, index=True)
    repo_user_name: Mapped[str] = mapped_column(String(255))
    repo_name: Mapped[str] = mapped_column(String(255))
    ref_name: Mapped[str] = mapped_column(String(255), default="")
    is_private: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    content: Mapped[str] = mapped_column(Text, default="")
    created_unix: Mapped[int] = mapped_column(BigInteger, default=0)

    __table_args__ = (Index("ix_actions_user_id_id", "user_id", "id"),)


@event.listens_for(Action, "before_insert")
def _set_created_unix(mapper, connection, target: Action) -> None:
    if not target.created_unix:
        target.created_unix = now_unix()
