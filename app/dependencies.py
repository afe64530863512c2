"""Centralized FastAPI dependencies for use with Depends()."""

from typing import Annotated

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db_session
from app.services.actions import ActionsService
from app.services.feeds import FeedService
from app.services.git import GitCLI, GitPlumbing
from app.services.stores import SqlIssueStore, SqlRepoStore, SqlUserStore, SqlWatchStore
from app.services.webhooks import InMemoryWebhookDispatcher, WebhookDispatcher

_webhook_dispatcher: WebhookDispatcher = InMemoryWebhookDispatcher()
_git: GitPlumbing = GitCLI()

logger = structlog.get_logger()


def init_production_deps(
    gcp_project: str,
    gcp_location: str,
    cloud_tasks_queue: str,
    webhook_delivery_url: str,
) -> None:
    """Swap the in-memory webhook dispatcher for a real hand-off.

    Cloud Tasks is used when a GCP project is configured, otherwise payloads
    are posted straight to ``webhook_delivery_url``. With neither set the
    in-memory dispatcher stays in place and webhooks are never delivered.
    """
    global _webhook_dispatcher  # noqa: PLW0603

    if not gcp_project and not webhook_delivery_url:
        logger.warning(
            "webhook_delivery_disabled",
            dispatcher=type(_webhook_dispatcher).__name__,
            hint="set GCP_PROJECT or WEBHOOK_DELIVERY_URL",
        )
        return

    from app.services.webhooks import CloudTasksWebhookDispatcher, HttpWebhookDispatcher

    if gcp_project:
        _webhook_dispatcher = CloudTasksWebhookDispatcher(
            gcp_project, gcp_location, cloud_tasks_queue, webhook_delivery_url
        )
    else:
        _webhook_dispatcher = HttpWebhookDispatcher(webhook_delivery_url)


def get_webhook_dispatcher() -> WebhookDispatcher:
    """Return the application webhook dispatcher.

    Defaults to InMemoryWebhookDispatcher for development and testing.
    """
    return _webhook_dispatcher


def get_git() -> GitPlumbing:
    return _git


def get_actions_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    dispatcher: Annotated[WebhookDispatcher, Depends(get_webhook_dispatcher)],
    git: Annotated[GitPlumbing, Depends(get_git)],
) -> ActionsService:
    """Build an ActionsService bound to the request session."""
    return ActionsService(
        session,
        users=SqlUserStore(session),
        repos=SqlRepoStore(session),
        watches=SqlWatchStore(session),
        issues=SqlIssueStore(session),
        git=git,
        dispatcher=dispatcher,
    )


def get_feed_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> FeedService:
    return FeedService(session)


__all__ = [
    "get_actions_service",
    "get_db_session",
    "get_feed_service",
    "get_git",
    "get_webhook_dispatcher",
    "init_production_deps",
]
