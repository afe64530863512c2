"""Initial schema: accounts, repositories, watches, issues, teams and actions.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger, primary_key=True)


def _fk(name: str, target: str, **kwargs) -> sa.Column:
    return sa.Column(
        name, sa.BigInteger, sa.ForeignKey(target, ondelete="CASCADE"), nullable=False, **kwargs
    )


def upgrade() -> None:
    """Create all tables used by push processing and the activity feeds."""
    op.create_table(
        "users",
        _id(),
        sa.Column("lower_name", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("avatar", sa.String(2048), nullable=False, server_default=""),
        sa.Column("avatar_email", sa.String(255), nullable=False, server_default=""),
        sa.Column("use_custom_avatar", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_organization", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_unix", sa.BigInteger, nullable=False, server_default="0"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "repositories",
        _id(),
        _fk("owner_id", "users.id"),
        sa.Column("lower_name", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(512), nullable=False, server_default=""),
        sa.Column("website", sa.String(2048), nullable=False, server_default=""),
        sa.Column("default_branch", sa.String(255), nullable=False, server_default="master"),
        sa.Column("is_private", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_unlisted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_bare", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_fork", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_mirror", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("enable_issues", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "enable_external_tracker", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("num_watches", sa.Integer, nullable=False, server_default="0"),
        sa.Column("num_stars", sa.Integer, nullable=False, server_default="0"),
        sa.Column("num_forks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("num_issues", sa.Integer, nullable=False, server_default="0"),
        sa.Column("num_closed_issues", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_unix", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_unix", sa.BigInteger, nullable=False, server_default="0"),
        sa.UniqueConstraint("owner_id", "lower_name", name="uq_repositories_owner_lower_name"),
    )

    op.create_table(
        "watches",
        _id(),
        _fk("user_id", "users.id"),
        _fk("repo_id", "repositories.id", index=True),
        sa.UniqueConstraint("user_id", "repo_id", name="uq_watches_user_repo"),
    )

    op.create_table(
        "issues",
        _id(),
        _fk("repo_id", "repositories.id"),
        sa.Column("index", sa.BigInteger, nullable=False),
        sa.Column("poster_id", sa.BigInteger, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("is_closed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_pull", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_unix", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_unix", sa.BigInteger, nullable=False, server_default="0"),
        sa.UniqueConstraint("repo_id", "index", name="uq_issues_repo_index"),
    )

    op.create_table(
        "comments",
        _id(),
        sa.Column("type", sa.Integer, nullable=False),
        sa.Column("poster_id", sa.BigInteger, nullable=False),
        _fk("issue_id", "issues.id", index=True),
        sa.Column("commit_sha", sa.String(64), nullable=False, server_default=""),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("created_unix", sa.BigInteger, nullable=False, server_default="0"),
    )

    op.create_table(
        "teams",
        _id(),
        _fk("org_id", "users.id", index=True),
        sa.Column("name", sa.String(255), nullable=False),
    )
    op.create_table(
        "team_users",
        _id(),
        sa.Column("org_id", sa.BigInteger, nullable=False, index=True),
        _fk("team_id", "teams.id"),
        sa.Column("uid", sa.BigInteger, nullable=False),
        sa.UniqueConstraint("team_id", "uid", name="uq_team_users_team_uid"),
    )
    op.create_table(
        "team_repos",
        _id(),
        sa.Column("org_id", sa.BigInteger, nullable=False, index=True),
        _fk("team_id", "teams.id"),
        sa.Column("repo_id", sa.BigInteger, nullable=False),
        sa.UniqueConstraint("team_id", "repo_id", name="uq_team_repos_team_repo"),
    )

    # --- activity feed ---
    op.create_table(
        "actions",
        _id(),
        sa.Column("user_id", sa.BigInteger, nullable=False, index=True),
        sa.Column("op_type", sa.Integer, nullable=False),
        sa.Column("act_user_id", sa.BigInteger, nullable=False),
        sa.Column("act_user_name", sa.String(255), nullable=False),
        sa.Column("repo_id", sa.BigInteger, nullable=False, index=True),
        sa.Column("repo_user_name", sa.String(255), nullable=False),
        sa.Column("repo_name", sa.String(255), nullable=False),
        sa.Column("ref_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("is_private", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("created_unix", sa.BigInteger, nullable=False, server_default="0"),
    )
    # Feed pagination walks (user_id, id) descending
    op.create_index("ix_actions_user_id_id", "actions", ["user_id", "id"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("actions")
    op.drop_table("team_repos")
    op.drop_table("team_users")
    op.drop_table("teams")
    op.drop_table("comments")
    op.drop_table("issues")
    op.drop_table("watches")
    op.drop_table("repositories")
    op.drop_table("users")
