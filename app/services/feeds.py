"""Activity feed queries for dashboards, profiles and organizations.

Results are ordered newest first and paginated by passing the id of the
last row seen as ``after_id``.
"""

from sqlalchemy import Select, and_, false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.models import Action, Repository, TeamRepo, TeamUser


def user_feed_query(
    user_id: int, actor_id: int, after_id: int, *, is_profile: bool, limit: int
) -> Select[tuple[Action]]:
    """Build the query behind ``list_by_user``.

    On someone else's profile page only public activities performed by the
    profile owner are visible.
    """
    stmt = select(Action).where(Action.user_id == user_id)
    if after_id > 0:
        stmt = stmt.where(Action.id < after_id)
    if is_profile and actor_id != user_id:
        stmt = stmt.where(Action.is_private.is_(false()), Action.act_user_id == user_id)
    return stmt.order_by(Action.id.desc()).limit(limit)


def organization_feed_query(
    org_id: int, actor_id: int, after_id: int, *, limit: int
) -> Select[tuple[Action]]:
    """Build the query behind ``list_by_organization``.

    Only activities on repositories shared with one of the actor's teams in
    the organization, or on public listed repositories, are visible.
    """
    actor_teams = select(TeamUser.team_id).where(
        TeamUser.org_id == org_id, TeamUser.uid == actor_id
    )
    visible_repos = (
        select(Repository.id)
        .outerjoin(TeamRepo, Repository.id == TeamRepo.repo_id)
        .where(
            or_(
                TeamRepo.team_id.in_(actor_teams),
                and_(Repository.is_private.is_(false()), Repository.is_unlisted.is_(false())),
            )
        )
    )
    stmt = select(Action).where(Action.user_id == org_id)
    if after_id > 0:
        stmt = stmt.where(Action.id < after_id)
    stmt = stmt.where(Action.repo_id.in_(visible_repos))
    return stmt.order_by(Action.id.desc()).limit(limit)


class FeedService:
    """Reads activity rows addressed to a user or organization."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_by_user(
        self, user_id: int, actor_id: int, after_id: int = 0, *, is_profile: bool = False
    ) -> list[Action]:
        stmt = user_feed_query(
            user_id,
            actor_id,
            after_id,
            is_profile=is_profile,
            limit=settings.news_feed_paging_num,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_organization(
        self, org_id: int, actor_id: int, after_id: int = 0
    ) -> list[Action]:
        stmt = organization_feed_query(
            org_id, actor_id, after_id, limit=settings.news_feed_paging_num
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
