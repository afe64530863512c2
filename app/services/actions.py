"""Activity recording for pushes and other repository events.

Coordinates the push flow: load pusher and repository -> mark the
repository as pushed -> classify the ref change -> build and dispatch
webhooks -> scan commit messages for issue references -> fan the activity
out to the pusher and every watcher.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.models import Action, ActionType, Issue, Repository, User, now_unix
from app.exceptions import wrap_errors
from app.logging_config import bind_push_context
from app.schemas.webhooks import CreatePayload, DeletePayload, HookEvent, PushPayload
from app.services.git import GitPlumbing
from app.services.issue_refs import update_commit_references_to_issues
from app.services.push_commits import PushCommits
from app.services.refs import (
    EMPTY_COMMIT_ID,
    RefChangeKind,
    RefType,
    classify_ref_change,
)
from app.services.snapshots import (
    api_repository,
    api_user,
    compose_compare_url,
    repo_disk_path,
    repo_html_url,
)
from app.services.stores import IssueStore, RepoStore, UserStore, WatchStore
from app.services.webhooks import WebhookDispatcher

logger = structlog.get_logger()


@dataclass(slots=True)
class CommitRepoOptions:
    pusher_name: str
    repo_owner_id: int
    repo_name: str
    ref_full_name: str
    old_commit_id: str
    new_commit_id: str
    commits: PushCommits


@dataclass(slots=True)
class PushTagOptions:
    pusher_name: str
    repo_owner_id: int
    repo_name: str
    ref_full_name: str
    new_commit_id: str
    old_commit_id: str = EMPTY_COMMIT_ID


@dataclass(frozen=True, slots=True)
class ActivityTemplate:
    """Everything an activity row carries except its recipient."""

    op_type: ActionType
    act_user_id: int
    act_user_name: str
    repo_id: int
    repo_user_name: str
    repo_name: str
    ref_name: str = ""
    is_private: bool = False
    content: str = ""
    created_unix: int = dataclasses.field(default_factory=now_unix)

    @classmethod
    def for_repo(
        cls,
        op_type: ActionType,
        doer: User,
        repo: Repository,
        *,
        ref_name: str = "",
        content: str = "",
    ) -> ActivityTemplate:
        return cls(
            op_type=op_type,
            act_user_id=doer.id,
            act_user_name=doer.name,
            repo_id=repo.id,
            repo_user_name=repo.owner.name,
            repo_name=repo.name,
            ref_name=ref_name,
            is_private=bool(repo.is_private or repo.is_unlisted),
            content=content,
        )

    def for_recipient(self, user_id: int) -> Action:
        return Action(
            user_id=user_id,
            op_type=int(self.op_type),
            act_user_id=self.act_user_id,
            act_user_name=self.act_user_name,
            repo_id=self.repo_id,
            repo_user_name=self.repo_user_name,
            repo_name=self.repo_name,
            ref_name=self.ref_name,
            is_private=self.is_private,
            content=self.content,
            created_unix=self.created_unix,
        )


class ActionsService:
    """Records activities and emits webhooks for repository events."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        users: UserStore,
        repos: RepoStore,
        watches: WatchStore,
        issues: IssueStore,
        git: GitPlumbing,
        dispatcher: WebhookDispatcher,
    ) -> None:
        self.session = session
        self.users = users
        self.repos = repos
        self.watches = watches
        self.issues = issues
        self.git = git
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def notify_watchers(self, template: ActivityTemplate) -> list[Action]:
        """Persist one copy of the activity for the actor and each watcher.

        The actor always gets exactly one row, whether or not they watch
        the repository. All rows are written in one flush.
        """
        with wrap_errors("get watches"):
            watches = await self.watches.list_by_repo(template.repo_id)

        rows = [template.for_recipient(template.act_user_id)]
        rows.extend(
            template.for_recipient(watch.user_id)
            for watch in watches
            if watch.user_id != template.act_user_id
        )

        with wrap_errors("create actions"):
            self.session.add_all(rows)
            await self.session.flush()

        logger.info(
            "activity_recorded",
            op_type=template.op_type.name,
            repo_id=template.repo_id,
            recipients=len(rows),
        )
        return rows

    async def _notify(self, template: ActivityTemplate) -> None:
        with wrap_errors("notify watchers"):
            await self.notify_watchers(template)

    async def _dispatch(
        self,
        repo: Repository,
        event: HookEvent,
        payload: CreatePayload | DeletePayload | PushPayload,
        operation: str,
    ) -> None:
        with wrap_errors(f"prepare webhooks ({operation})"):
            await self.dispatcher.dispatch(repo, event, payload)
        logger.info("webhook_prepared", hook_event=str(event), operation=operation)

    async def _load_push_target(
        self, pusher_name: str, repo_owner_id: int, repo_name: str
    ) -> tuple[User, Repository]:
        with wrap_errors(f"get pusher [name: {pusher_name}]"):
            pusher = await self.users.get_by_username(pusher_name)
        with wrap_errors(f"get repository [owner_id: {repo_owner_id}, name: {repo_name}]"):
            repo = await self.repos.get_by_name(repo_owner_id, repo_name)

        # Any push, including a deletion, means the repository is no longer bare.
        with wrap_errors("update repository"):
            await self.repos.mark_pushed(repo)
        return pusher, repo

    async def _update_issue_references(
        self, pusher: User, repo: Repository, commits: PushCommits
    ) -> None:
        # Only the internal issue tracker is updated from commit messages.
        if not repo.enable_issues or repo.enable_external_tracker:
            return
        try:
            # A failed scan rolls back to the savepoint so the push can still be recorded.
            async with self.session.begin_nested():
                await update_commit_references_to_issues(
                    self.issues, pusher, repo, commits.commits
                )
        except Exception:
            logger.exception("commit_references_failed")
            # The rollback expires whatever the scan touched, the repository included.
            with wrap_errors("reload repository"):
                await self.session.refresh(repo)

    # ------------------------------------------------------------------
    # Pushes
    # ------------------------------------------------------------------

    async def commit_repo(self, opts: CommitRepoOptions) -> None:
        """Record a branch push.

        A deleted branch yields a delete webhook and a ``DELETE_BRANCH``
        activity only. A new branch yields create and push webhooks and a
        ``CREATE_BRANCH`` activity; an updated branch yields a push webhook
        and a ``COMMIT_REPO`` activity.

        Raises:
            NotFoundError: If the pusher or repository does not exist.
            ActionError: On any storage, git or webhook failure.
        """
        pusher, repo = await self._load_push_target(
            opts.pusher_name, opts.repo_owner_id, opts.repo_name
        )
        change = classify_ref_change(
            opts.old_commit_id, opts.new_commit_id, opts.ref_full_name, RefType.BRANCH
        )

        with bind_push_context(repo=repo.full_name, ref=change.ref_name, pusher=pusher.name):
            api_repo = api_repository(repo)
            api_pusher = api_user(pusher)

            if change.kind is RefChangeKind.DELETE:
                await self._dispatch(
                    repo,
                    HookEvent.DELETE,
                    DeletePayload(
                        ref=change.ref_name,
                        ref_type=RefType.BRANCH.value,
                        repository=api_repo,
                        sender=api_pusher,
                    ),
                    "delete branch",
                )
                await self._notify(
                    ActivityTemplate.for_repo(
                        ActionType.DELETE_BRANCH, pusher, repo, ref_name=change.ref_name
                    )
                )
                logger.info("push_processed", kind=str(change.kind))
                return

            commits = opts.commits
            if not commits.total:
                commits.total = len(commits.commits)
            commits.truncate(settings.feed_max_commit_num)
            if change.kind is RefChangeKind.PUSH:
                commits.compare_url = compose_compare_url(
                    repo, opts.old_commit_id, opts.new_commit_id
                )

            compare_url = ""
            if change.kind is RefChangeKind.CREATE:
                await self._dispatch(
                    repo,
                    HookEvent.CREATE,
                    CreatePayload(
                        ref=change.ref_name,
                        ref_type=RefType.BRANCH.value,
                        default_branch=repo.default_branch,
                        repository=api_repo,
                        sender=api_pusher,
                    ),
                    "new branch",
                )
                op_type = ActionType.CREATE_BRANCH
            else:
                compare_url = settings.external_url + commits.compare_url
                op_type = ActionType.COMMIT_REPO

            with wrap_errors("convert commits to API format"):
                payload_commits = await commits.to_api_payload_commits(
                    self.users, self.git, repo_disk_path(repo), repo_html_url(repo)
                )
            await self._dispatch(
                repo,
                HookEvent.PUSH,
                PushPayload(
                    ref=opts.ref_full_name,
                    before=opts.old_commit_id,
                    after=opts.new_commit_id,
                    compare_url=compare_url,
                    commits=payload_commits,
                    repository=api_repo,
                    pusher=api_pusher,
                    sender=api_pusher,
                ),
                "new commit",
            )
            await self._update_issue_references(pusher, repo, commits)

            await self._notify(
                ActivityTemplate.for_repo(
                    op_type, pusher, repo, ref_name=change.ref_name, content=commits.to_content()
                )
            )
            logger.info("push_processed", kind=str(change.kind), commits=len(commits.commits))

    async def push_tag(self, opts: PushTagOptions) -> None:
        """Record a tag push: ``DELETE_TAG`` on deletion, ``PUSH_TAG`` otherwise."""
        pusher, repo = await self._load_push_target(
            opts.pusher_name, opts.repo_owner_id, opts.repo_name
        )
        change = classify_ref_change(
            opts.old_commit_id, opts.new_commit_id, opts.ref_full_name, RefType.TAG
        )

        with bind_push_context(repo=repo.full_name, ref=change.ref_name, pusher=pusher.name):
            api_repo = api_repository(repo)
            api_pusher = api_user(pusher)

            if change.kind is RefChangeKind.DELETE:
                await self._dispatch(
                    repo,
                    HookEvent.DELETE,
                    DeletePayload(
                        ref=change.ref_name,
                        ref_type=RefType.TAG.value,
                        repository=api_repo,
                        sender=api_pusher,
                    ),
                    "delete tag",
                )
                op_type = ActionType.DELETE_TAG
            else:
                await self._dispatch(
                    repo,
                    HookEvent.CREATE,
                    CreatePayload(
                        ref=change.ref_name,
                        ref_type=RefType.TAG.value,
                        sha=opts.new_commit_id,
                        default_branch=repo.default_branch,
                        repository=api_repo,
                        sender=api_pusher,
                    ),
                    "new tag",
                )
                op_type = ActionType.PUSH_TAG

            await self._notify(
                ActivityTemplate.for_repo(op_type, pusher, repo, ref_name=change.ref_name)
            )
            logger.info("tag_processed", kind=str(change.kind))

    # ------------------------------------------------------------------
    # Repository lifecycle
    # ------------------------------------------------------------------

    async def new_repo(self, doer: User, repo: Repository) -> None:
        op_type = ActionType.FORK_REPO if repo.is_fork else ActionType.CREATE_REPO
        await self.notify_watchers(ActivityTemplate.for_repo(op_type, doer, repo))

    async def rename_repo(self, doer: User, old_repo_name: str, repo: Repository) -> None:
        await self.notify_watchers(
            ActivityTemplate.for_repo(ActionType.RENAME_REPO, doer, repo, content=old_repo_name)
        )

    async def transfer_repo(self, doer: User, old_owner: User, repo: Repository) -> None:
        await self.notify_watchers(
            ActivityTemplate.for_repo(
                ActionType.TRANSFER_REPO, doer, repo, content=f"{old_owner.name}/{repo.name}"
            )
        )

    async def merge_pull_request(self, doer: User, repo: Repository, pull: Issue) -> None:
        await self.notify_watchers(
            ActivityTemplate.for_repo(
                ActionType.MERGE_PULL_REQUEST, doer, repo, content=f"{pull.index}|{pull.title}"
            )
        )

    # ------------------------------------------------------------------
    # Mirror synchronization, attributed to the repository owner
    # ------------------------------------------------------------------

    async def _mirror_sync_action(
        self, op_type: ActionType, repo: Repository, ref_name: str, content: str = ""
    ) -> None:
        await self.notify_watchers(
            ActivityTemplate.for_repo(op_type, repo.owner, repo, ref_name=ref_name, content=content)
        )

    async def mirror_sync_push(
        self,
        repo: Repository,
        ref_name: str,
        old_commit_id: str,
        new_commit_id: str,
        commits: PushCommits,
    ) -> None:
        if not commits.total:
            commits.total = len(commits.commits)
        commits.truncate(settings.feed_max_commit_num)

        with wrap_errors("convert commits to API format"):
            payload_commits = await commits.to_api_payload_commits(
                self.users, self.git, repo_disk_path(repo), repo_html_url(repo)
            )

        commits.compare_url = compose_compare_url(repo, old_commit_id, new_commit_id)
        api_pusher = api_user(repo.owner)
        await self._dispatch(
            repo,
            HookEvent.PUSH,
            PushPayload(
                ref=ref_name,
                before=old_commit_id,
                after=new_commit_id,
                compare_url=settings.external_url + commits.compare_url,
                commits=payload_commits,
                repository=api_repository(repo),
                pusher=api_pusher,
                sender=api_pusher,
            ),
            "mirror sync",
        )
        await self._mirror_sync_action(
            ActionType.MIRROR_SYNC_PUSH, repo, ref_name, commits.to_content()
        )

    async def mirror_sync_create(self, repo: Repository, ref_name: str) -> None:
        await self._mirror_sync_action(ActionType.MIRROR_SYNC_CREATE, repo, ref_name)

    async def mirror_sync_delete(self, repo: Repository, ref_name: str) -> None:
        await self._mirror_sync_action(ActionType.MIRROR_SYNC_DELETE, repo, ref_name)
