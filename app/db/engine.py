"""Async database engine and session factory lifecycle."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_engine(database_url: str, *, echo: bool = False) -> None:
    """Create the async engine and the session factory bound to it.

    Sessions do not expire on commit so ORM rows handed to the webhook
    payload builder stay readable after the push transaction commits.
    """
    global engine, async_session_factory  # noqa: PLW0603

    engine = create_async_engine(
        database_url,
        pool_size=10,
        max_overflow=5,
        pool_pre_ping=True,
        echo=echo,
    )
    async_session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engine() -> None:
    """Close all pooled connections and forget the factory."""
    global engine, async_session_factory  # noqa: PLW0603

    if engine is not None:
        await engine.dispose()
    engine = None
    async_session_factory = None
