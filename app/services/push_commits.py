"""The batch of commits carried by one push.

A ``PushCommits`` batch is stored verbatim as the content of push
activities, so its JSON keys follow the persisted feed format
(``Sha1``, ``AuthorEmail`` ...), not Python naming.
"""

from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from app.exceptions import ActionError, UserNotExist
from app.schemas.webhooks import PayloadCommit, PayloadUser
from app.services.git import GitPlumbing
from app.services.snapshots import gravatar_link, user_avatar_link
from app.services.stores import UserStore

logger = structlog.get_logger()


class PushCommit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sha1: str = Field(alias="Sha1")
    message: str = Field(alias="Message")
    author_email: str = Field(alias="AuthorEmail")
    author_name: str = Field(alias="AuthorName")
    committer_email: str = Field(alias="CommitterEmail")
    committer_name: str = Field(alias="CommitterName")
    timestamp: datetime = Field(alias="Timestamp")


class PushCommits(BaseModel):
    """Ordered commits of a push, newest first as reported by the git hook."""

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(default=0, alias="Len")
    commits: list[PushCommit] = Field(default_factory=list, alias="Commits")
    compare_url: str = Field(default="", alias="CompareURL")

    _avatars: dict[str, str] = PrivateAttr(default_factory=dict)

    def truncate(self, max_commits: int) -> None:
        """Keep only the first ``max_commits`` commits."""
        if len(self.commits) > max_commits:
            self.commits = self.commits[:max_commits]

    def to_content(self) -> str:
        """Serialize the batch for storage as activity content."""
        return self.model_dump_json(by_alias=True)

    async def to_api_payload_commits(
        self,
        users: UserStore,
        git: GitPlumbing,
        repo_path: str,
        repo_url: str,
    ) -> list[PayloadCommit]:
        """Build webhook commit entries, one per commit in batch order.

        Author and committer emails are resolved to account names once per
        call; an email with no account resolves to ``""``.

        Raises:
            ActionError: If a user lookup fails for a reason other than a
                missing account, or the name-status diff cannot be read.
        """
        username_by_email: dict[str, str] = {}

        async def get_username_by_email(email: str) -> str:
            if email in username_by_email:
                return username_by_email[email]
            try:
                user = await users.get_by_email(email)
            except UserNotExist:
                username_by_email[email] = ""
                return ""
            username_by_email[email] = user.name
            return user.name

        payload_commits: list[PayloadCommit] = []
        for commit in self.commits:
            try:
                author_username = await get_username_by_email(commit.author_email)
            except Exception as err:
                raise ActionError("get author username", err) from err
            try:
                committer_username = await get_username_by_email(commit.committer_email)
            except Exception as err:
                raise ActionError("get committer username", err) from err
            try:
                name_status = await git.show_name_status(repo_path, commit.sha1)
            except Exception as err:
                raise ActionError(f"show name status [commit_sha1: {commit.sha1}]", err) from err

            payload_commits.append(
                PayloadCommit(
                    id=commit.sha1,
                    message=commit.message,
                    url=f"{repo_url}/commit/{commit.sha1}",
                    author=PayloadUser(
                        name=commit.author_name,
                        email=commit.author_email,
                        username=author_username,
                    ),
                    committer=PayloadUser(
                        name=commit.committer_name,
                        email=commit.committer_email,
                        username=committer_username,
                    ),
                    added=name_status.added,
                    removed=name_status.removed,
                    modified=name_status.modified,
                    timestamp=commit.timestamp,
                )
            )
        return payload_commits

    async def avatar_link(self, users: UserStore, email: str) -> str:
        """Return the avatar for a commit email, cached for the batch lifetime.

        Falls back to the Gravatar link when no account matches or the
        lookup fails.
        """
        if email not in self._avatars:
            try:
                user = await users.get_by_email(email)
            except UserNotExist:
                self._avatars[email] = gravatar_link(email)
            except Exception:
                logger.exception("get_user_by_email_failed", email=email)
                self._avatars[email] = gravatar_link(email)
            else:
                self._avatars[email] = user_avatar_link(user)
        return self._avatars[email]
