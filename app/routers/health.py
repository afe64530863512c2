"""Health check endpoint with database connectivity verification."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.session import get_db_session
from app.schemas.health import HealthResponse

router = APIRouter()

DBSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.get("/healthz", response_model=HealthResponse)
async def healthz(db: DBSession) -> HealthResponse:
    """Report liveness once ``SELECT 1`` succeeds; database errors surface as 500."""
    await db.execute(text("SELECT 1"))
    return HealthResponse(status="ok", service=settings.app_name, database="connected")
