"""Display helpers for activity rows.

``ActionView`` keeps rendering concerns (shortened names, links, parsed
content) out of the ``Action`` model.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog

from app.config import settings
from app.db.models import Action, ActionType
from app.services.stores import IssueStore

logger = structlog.get_logger()

ISSUE_LOOKUP_ERROR = "error getting issue"


def ellipsis(text: str, threshold: int) -> str:
    """Cut ``text`` to ``threshold`` characters, appending ``...`` if cut."""
    if threshold < 0 or len(text) <= threshold:
        return text
    return text[:threshold] + "..."


class ActionView:
    def __init__(self, action: Action) -> None:
        self.action = action

    @property
    def op_type(self) -> ActionType:
        return ActionType(self.action.op_type)

    @property
    def short_act_user_name(self) -> str:
        return ellipsis(self.action.act_user_name, 20)

    @property
    def short_repo_user_name(self) -> str:
        return ellipsis(self.action.repo_user_name, 20)

    @property
    def short_repo_name(self) -> str:
        return ellipsis(self.action.repo_name, 33)

    @property
    def repo_path(self) -> str:
        return f"{self.action.repo_user_name}/{self.action.repo_name}"

    @property
    def short_repo_path(self) -> str:
        return f"{self.short_repo_user_name}/{self.short_repo_name}"

    @property
    def repo_link(self) -> str:
        if settings.subpath:
            return f"{settings.subpath.rstrip('/')}/{self.repo_path}"
        return f"/{self.repo_path}"

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.action.created_unix, tz=UTC)

    def issue_infos(self) -> list[str]:
        """Split ``index|title`` content; the title may itself contain ``|``."""
        return self.action.content.split("|", 1)

    def _issue_index(self) -> int:
        try:
            return int(self.issue_infos()[0])
        except ValueError:
            return 0

    async def issue_title(self, issues: IssueStore) -> str:
        try:
            issue = await issues.get_by_index(self.action.repo_id, self._issue_index())
        except Exception:
            logger.exception("get_issue_by_index_failed", action_id=self.action.id)
            return ISSUE_LOOKUP_ERROR
        return issue.title

    async def issue_content(self, issues: IssueStore) -> str:
        try:
            issue = await issues.get_by_index(self.action.repo_id, self._issue_index())
        except Exception:
            logger.exception("get_issue_by_index_failed", action_id=self.action.id)
            return ISSUE_LOOKUP_ERROR
        return issue.content
