"""Pydantic models for the internal push endpoints and the activity feeds."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.services.actions import CommitRepoOptions, PushTagOptions
from app.services.push_commits import PushCommit, PushCommits
from app.services.refs import EMPTY_COMMIT_ID


class CommitRepoRequest(BaseModel):
    """Sent by the post-receive hook for every updated branch."""

    pusher_name: str
    repo_owner_id: int
    repo_name: str
    ref_full_name: str
    old_commit_id: str
    new_commit_id: str
    # Number of commits in the push before any truncation
    total_commits: int = 0
    commits: list[PushCommit] = Field(default_factory=list)

    def to_options(self) -> CommitRepoOptions:
        return CommitRepoOptions(
            pusher_name=self.pusher_name,
            repo_owner_id=self.repo_owner_id,
            repo_name=self.repo_name,
            ref_full_name=self.ref_full_name,
            old_commit_id=self.old_commit_id,
            new_commit_id=self.new_commit_id,
            commits=PushCommits(total=self.total_commits, commits=list(self.commits)),
        )


class PushTagRequest(BaseModel):
    """Sent by the post-receive hook for every updated tag."""

    pusher_name: str
    repo_owner_id: int
    repo_name: str
    ref_full_name: str
    new_commit_id: str
    old_commit_id: str = EMPTY_COMMIT_ID

    def to_options(self) -> PushTagOptions:
        return PushTagOptions(
            pusher_name=self.pusher_name,
            repo_owner_id=self.repo_owner_id,
            repo_name=self.repo_name,
            ref_full_name=self.ref_full_name,
            new_commit_id=self.new_commit_id,
            old_commit_id=self.old_commit_id,
        )


class PushAccepted(BaseModel):
    status: str = "accepted"


class ActionOut(BaseModel):
    """An activity row plus display fields."""

    id: int
    user_id: int
    op_type: int
    op_name: str
    act_user_id: int
    act_user_name: str
    short_act_user_name: str
    repo_id: int
    repo_user_name: str
    repo_name: str
    short_repo_path: str
    repo_link: str
    ref_name: str
    is_private: bool
    content: str
    created: datetime
