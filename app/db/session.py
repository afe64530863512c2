"""Request-scoped database session dependency."""

from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import engine as _engine

logger = structlog.get_logger()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request.

    Everything a push writes (bare flag, issue changes, activity rows) is
    committed together when the handler returns and rolled back if it raises.

    Raises:
        RuntimeError: If ``init_engine()`` has not been called.
    """
    factory = _engine.async_session_factory
    if factory is None:
        msg = "Database session factory not initialized. Call init_engine() first."
        raise RuntimeError(msg)

    async with factory() as session:
        try:
            yield session
        except Exception as err:
            await session.rollback()
            logger.warning("transaction_rolled_back", error_type=type(err).__name__)
            raise
        await session.commit()
