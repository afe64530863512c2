"""Tests for production hardening: exception handlers, structlog, API key check."""

from __future__ import annotations

import inspect
import json
import logging
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import structlog

from app.config import settings
from app.exceptions import ActionError, NotFoundError, wrap_errors
from app.logging_config import bind_push_context, configure_logging

if TYPE_CHECKING:
    from httpx import AsyncClient


# ---------------------------------------------------------------------------
# 1. Exception handlers return JSON 500
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_global_exception_handler_returns_json() -> None:
    """The unhandled_exception_handler returns JSON with status 500."""
    from app.main import unhandled_exception_handler

    mock_request = MagicMock()
    mock_request.url.path = "/test"
    mock_request.method = "GET"

    response = await unhandled_exception_handler(mock_request, Exception("boom"))

    assert response.status_code == 500
    assert json.loads(response.body) == {"detail": "Internal server error"}


@pytest.mark.anyio
async def test_action_error_handler_reports_operation() -> None:
    from app.main import action_error_handler

    mock_request = MagicMock()
    mock_request.url.path = "/internal/push"

    response = await action_error_handler(
        mock_request, ActionError("create actions", RuntimeError("disk full"))
    )

    assert response.status_code == 500
    assert json.loads(response.body) == {"detail": "create actions: disk full"}


# ---------------------------------------------------------------------------
# 2. Error wrapping
# ---------------------------------------------------------------------------


def test_wrap_errors_wraps_failures() -> None:
    cause = ValueError("bad row")

    with pytest.raises(ActionError) as exc_info, wrap_errors("update repository"):
        raise cause

    assert exc_info.value.operation == "update repository"
    assert exc_info.value.cause is cause
    assert exc_info.value.__cause__ is cause


def test_wrap_errors_lets_not_found_through() -> None:
    with pytest.raises(NotFoundError), wrap_errors("get pusher [name: x]"):
        raise NotFoundError("missing")


# ---------------------------------------------------------------------------
# 3. structlog configuration
# ---------------------------------------------------------------------------


def test_configure_logging_installs_single_handler() -> None:
    configure_logging(json_logs=True, log_level="warning", service="push-activity-engine")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)


def test_bind_push_context_is_scoped() -> None:
    with bind_push_context(repo="acme/widgets", ref="main", pusher="alice"):
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"repo": "acme/widgets", "ref": "main", "pusher": "alice"}

    assert "repo" not in structlog.contextvars.get_contextvars()


@pytest.mark.parametrize(
    "module_path",
    [
        "app.services.actions",
        "app.services.stores",
        "app.services.webhooks",
        "app.services.presentation",
        "app.routers.push",
    ],
)
def test_no_stdlib_logging(module_path: str) -> None:
    """Service modules must use structlog, not stdlib logging.getLogger."""
    import importlib

    module = importlib.import_module(module_path)
    source = inspect.getsource(module)
    assert "logging.getLogger" not in source, f"{module_path} still uses stdlib logging"
    assert "structlog" in source, f"{module_path} should use structlog"


def test_httpx_dispatcher_has_explicit_timeout() -> None:
    from app.services import webhooks

    source = inspect.getsource(webhooks.HttpWebhookDispatcher)
    assert "timeout=" in source, "httpx.AsyncClient must have explicit timeout"


# ---------------------------------------------------------------------------
# 4. API key middleware
# ---------------------------------------------------------------------------


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr(settings, "api_key", "s3cret")
    return "s3cret"


@pytest.mark.anyio
async def test_missing_api_key_is_rejected(client: AsyncClient, api_key: str) -> None:
    response = await client.get("/feeds/users/1")

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid or missing API key"}


@pytest.mark.anyio
async def test_valid_api_key_is_accepted(
    client: AsyncClient, api_key: str, mock_feed_service
) -> None:
    mock_feed_service.list_by_user.return_value = []

    response = await client.get("/feeds/users/1", headers={"X-API-Key": api_key})

    assert response.status_code == 200


@pytest.mark.anyio
async def test_health_probe_skips_api_key(client: AsyncClient, api_key: str) -> None:
    response = await client.get("/healthz")

    assert response.status_code == 200
