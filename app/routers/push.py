"""Internal endpoints called by the git post-receive hook.

Each call processes one ref update synchronously: the response is sent
after the activity has been recorded and the webhooks handed off.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from app.dependencies import get_actions_service
from app.exceptions import NotFoundError
from app.schemas.actions import CommitRepoRequest, PushAccepted, PushTagRequest
from app.services.actions import ActionsService

logger = structlog.get_logger()

router = APIRouter(prefix="/internal", tags=["internal"])

Service = Annotated[ActionsService, Depends(get_actions_service)]


@router.post("/push", status_code=status.HTTP_202_ACCEPTED, response_model=PushAccepted)
async def handle_push(payload: CommitRepoRequest, service: Service) -> PushAccepted:
    """Record a branch update pushed by ``pusher_name``."""
    try:
        await service.commit_repo(payload.to_options())
    except NotFoundError as err:
        logger.warning("push_target_not_found", error=str(err))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err)) from None
    return PushAccepted()


@router.post("/push-tag", status_code=status.HTTP_202_ACCEPTED, response_model=PushAccepted)
async def handle_push_tag(payload: PushTagRequest, service: Service) -> PushAccepted:
    """Record a tag creation or deletion pushed by ``pusher_name``."""
    try:
        await service.push_tag(payload.to_options())
    except NotFoundError as err:
        logger.warning("push_target_not_found", error=str(err))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err)) from None
    return PushAccepted()
