"""Read-only activity feed endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.db.models import Action
from app.dependencies import get_feed_service
from app.schemas.actions import ActionOut
from app.services.feeds import FeedService
from app.services.presentation import ActionView

router = APIRouter(prefix="/feeds", tags=["feeds"])

Feeds = Annotated[FeedService, Depends(get_feed_service)]


def _to_out(action: Action) -> ActionOut:
    view = ActionView(action)
    return ActionOut(
        id=action.id,
        user_id=action.user_id,
        op_type=action.op_type,
        op_name=view.op_type.name.lower(),
        act_user_id=action.act_user_id,
        act_user_name=action.act_user_name,
        short_act_user_name=view.short_act_user_name,
        repo_id=action.repo_id,
        repo_user_name=action.repo_user_name,
        repo_name=action.repo_name,
        short_repo_path=view.short_repo_path,
        repo_link=view.repo_link,
        ref_name=action.ref_name or "",
        is_private=bool(action.is_private),
        content=action.content or "",
        created=view.created,
    )


@router.get("/users/{user_id}", response_model=list[ActionOut])
async def user_feed(
    user_id: int,
    feeds: Feeds,
    actor_id: Annotated[int, Query()] = 0,
    after_id: Annotated[int, Query(ge=0)] = 0,
    is_profile: Annotated[bool, Query()] = False,
) -> list[ActionOut]:
    """Activities addressed to a user, newest first."""
    actions = await feeds.list_by_user(user_id, actor_id, after_id, is_profile=is_profile)
    return [_to_out(action) for action in actions]


@router.get("/orgs/{org_id}", response_model=list[ActionOut])
async def organization_feed(
    org_id: int,
    feeds: Feeds,
    actor_id: Annotated[int, Query()] = 0,
    after_id: Annotated[int, Query(ge=0)] = 0,
) -> list[ActionOut]:
    """Activities addressed to an organization that ``actor_id`` may see."""
    actions = await feeds.list_by_organization(org_id, actor_id, after_id)
    return [_to_out(action) for action in actions]
