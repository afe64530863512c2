"""Pydantic models for outbound webhook payloads (push, create, delete)."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class HookEvent(StrEnum):
    CREATE = "create"
    DELETE = "delete"
    PUSH = "push"


PUSHER_TYPE_USER = "user"


class ApiUser(BaseModel):
    """Public snapshot of an account."""

    id: int
    username: str
    login: str
    full_name: str = ""
    email: str = ""
    avatar_url: str = ""


class ApiRepository(BaseModel):
    """Public snapshot of a repository at the time of the event."""

    id: int
    owner: ApiUser
    name: str
    full_name: str
    description: str = ""
    private: bool = False
    unlisted: bool = False
    fork: bool = False
    mirror: bool = False
    empty: bool = False
    html_url: str
    clone_url: str
    website: str = ""
    stars_count: int = 0
    forks_count: int = 0
    watchers_count: int = 0
    open_issues_count: int = 0
    default_branch: str = ""
    created_at: datetime
    updated_at: datetime


class PayloadUser(BaseModel):
    """Author or committer of a commit, with the matching account name if any."""

    name: str
    email: str
    username: str = ""


class PayloadCommit(BaseModel):
    """A single commit within a push payload."""

    id: str
    message: str
    url: str
    author: PayloadUser
    committer: PayloadUser
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)
    timestamp: datetime


class CreatePayload(BaseModel):
    """Sent when a branch or tag is created."""

    ref: str
    ref_type: str
    sha: str = ""
    default_branch: str
    repository: ApiRepository
    sender: ApiUser


class DeletePayload(BaseModel):
    """Sent when a branch or tag is deleted."""

    ref: str
    ref_type: str
    pusher_type: str = PUSHER_TYPE_USER
    repository: ApiRepository
    sender: ApiUser


class PushPayload(BaseModel):
    """Sent for every push that carries commits."""

    ref: str
    before: str
    after: str
    compare_url: str
    commits: list[PayloadCommit] = Field(default_factory=list)
    repository: ApiRepository
    pusher: ApiUser
    sender: ApiUser
