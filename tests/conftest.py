"""Shared test fixtures for the push pipeline and the FastAPI test client."""

from collections.abc import AsyncGenerator, Iterator
from unittest.mock import AsyncMock

import pytest
from fakes import PushHarness, mock_session
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.session import get_db_session
from app.dependencies import get_actions_service, get_feed_service
from app.main import app
from app.services.actions import ActionsService
from app.services.feeds import FeedService


@pytest.fixture
def harness() -> PushHarness:
    """A fresh in-memory push environment (see ``PushHarness``)."""
    return PushHarness()


@pytest.fixture
def feed_settings() -> Iterator[None]:
    """Pin the URL and limit settings that payloads and feeds depend on."""
    saved = (
        settings.external_url,
        settings.subpath,
        settings.feed_max_commit_num,
        settings.news_feed_paging_num,
    )
    settings.external_url = "https://git.example.com/"
    settings.subpath = ""
    settings.feed_max_commit_num = 5
    settings.news_feed_paging_num = 20
    yield
    (
        settings.external_url,
        settings.subpath,
        settings.feed_max_commit_num,
        settings.news_feed_paging_num,
    ) = saved


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Mock async database session whose ``execute`` succeeds."""
    session = mock_session()
    session.execute.return_value = None
    return session


@pytest.fixture
def mock_actions_service() -> AsyncMock:
    return AsyncMock(spec=ActionsService)


@pytest.fixture
def mock_feed_service() -> AsyncMock:
    return AsyncMock(spec=FeedService)


@pytest.fixture
async def client(
    mock_db_session: AsyncMock,
    mock_actions_service: AsyncMock,
    mock_feed_service: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient with dependencies overridden.

    No database is needed: the session, the actions service and the feed
    service are all mocks the test can program and inspect.
    """

    async def _override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield mock_db_session  # type: ignore[misc]

    app.dependency_overrides[get_db_session] = _override_db_session
    app.dependency_overrides[get_actions_service] = lambda: mock_actions_service
    app.dependency_overrides[get_feed_service] = lambda: mock_feed_service
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
