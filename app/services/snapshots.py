"""Links and API snapshots derived from user and repository rows."""

import hashlib
import os
from datetime import UTC, datetime

from app.config import settings
from app.db.models import Repository, User
from app.schemas.webhooks import ApiRepository, ApiUser


def gravatar_link(email: str) -> str:
    """Return the Gravatar URL for an email address."""
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()  # noqa: S324
    return f"{settings.gravatar_source}{digest}?d=identicon"


def user_avatar_link(user: User) -> str:
    """Return the site-relative avatar link of an account."""
    if user.use_custom_avatar:
        return f"{settings.subpath}/avatars/{user.id}"
    return gravatar_link(user.avatar_email or user.email)


def repo_link(repo: Repository) -> str:
    """Site-relative link to the repository home page."""
    return f"{settings.subpath}/{repo.owner.name}/{repo.name}"


def repo_html_url(repo: Repository) -> str:
    """Absolute, external-facing URL of the repository."""
    return f"{settings.external_url}{repo.owner.name}/{repo.name}"


def repo_disk_path(repo: Repository) -> str:
    """Location of the bare repository on disk."""
    return os.path.join(
        settings.repository_root, repo.owner.name.lower(), f"{repo.name.lower()}.git"
    )


def compose_compare_url(repo: Repository, old_commit_id: str, new_commit_id: str) -> str:
    """Relative compare path between two commits, to be joined with ``external_url``."""
    return f"{repo.owner.name}/{repo.name}/compare/{old_commit_id}...{new_commit_id}"


def _from_unix(ts: int | None) -> datetime:
    return datetime.fromtimestamp(ts or 0, tz=UTC)


def api_user(user: User) -> ApiUser:
    return ApiUser(
        id=user.id,
        username=user.name,
        login=user.name,
        full_name=user.full_name or "",
        email=user.email,
        avatar_url=user_avatar_link(user),
    )


def api_repository(repo: Repository) -> ApiRepository:
    html_url = repo_html_url(repo)
    return ApiRepository(
        id=repo.id,
        owner=api_user(repo.owner),
        name=repo.name,
        full_name=repo.full_name,
        description=repo.description or "",
        private=bool(repo.is_private),
        unlisted=bool(repo.is_unlisted),
        fork=bool(repo.is_fork),
        mirror=bool(repo.is_mirror),
        empty=bool(repo.is_bare),
        html_url=html_url,
        clone_url=f"{html_url}.git",
        website=repo.website or "",
        stars_count=repo.num_stars or 0,
        forks_count=repo.num_forks or 0,
        watchers_count=repo.num_watches or 0,
        open_issues_count=(repo.num_issues or 0) - (repo.num_closed_issues or 0),
        default_branch=repo.default_branch or "",
        created_at=_from_unix(repo.created_unix),
        updated_at=_from_unix(repo.updated_unix),
    )
