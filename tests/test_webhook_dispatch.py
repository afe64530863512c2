"""Tests for webhook dispatchers and the delivery envelope."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from fakes import make_repo, make_user

from app.schemas.webhooks import DeletePayload, HookEvent
from app.services.snapshots import api_repository, api_user
from app.services.webhooks import (
    CloudTasksWebhookDispatcher,
    HttpWebhookDispatcher,
    InMemoryWebhookDispatcher,
    delivery_body,
)


def _payload() -> tuple:
    acme = make_user(1, "acme")
    repo = make_repo(10, acme, "widgets")
    payload = DeletePayload(
        ref="old-branch",
        ref_type="branch",
        repository=api_repository(repo),
        sender=api_user(acme),
    )
    return repo, payload


def test_delivery_body_envelope() -> None:
    repo, payload = _payload()

    body = delivery_body(repo, HookEvent.DELETE, payload)

    assert body["event"] == "delete"
    assert body["repo_id"] == 10
    assert body["repo_full_name"] == "acme/widgets"
    assert body["payload"]["ref"] == "old-branch"
    assert body["payload"]["pusher_type"] == "user"
    # Must survive a JSON round trip for the task body.
    json.dumps(body)


@pytest.mark.asyncio
async def test_in_memory_dispatcher_records() -> None:
    """Dispatching stores event, repo id and payload in order."""
    repo, payload = _payload()
    dispatcher = InMemoryWebhookDispatcher()

    await dispatcher.dispatch(repo, HookEvent.DELETE, payload)
    await dispatcher.dispatch(repo, HookEvent.PUSH, payload)

    assert dispatcher.events() == [HookEvent.DELETE, HookEvent.PUSH]
    assert dispatcher.deliveries[0]["repo_id"] == 10
    assert dispatcher.deliveries[0]["payload"] is payload


@pytest.mark.asyncio
async def test_in_memory_dispatcher_starts_empty() -> None:
    assert InMemoryWebhookDispatcher().deliveries == []


@pytest.mark.asyncio
async def test_http_dispatcher_posts_envelope() -> None:
    repo, payload = _payload()
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    dispatcher = HttpWebhookDispatcher(
        "https://hooks.internal/deliver", transport=httpx.MockTransport(handler)
    )
    await dispatcher.dispatch(repo, HookEvent.DELETE, payload)

    assert len(seen) == 1
    assert str(seen[0].url) == "https://hooks.internal/deliver"
    assert seen[0].headers["X-Hook-Event"] == "delete"
    assert json.loads(seen[0].content)["repo_full_name"] == "acme/widgets"


@pytest.mark.asyncio
async def test_http_dispatcher_raises_on_error_status() -> None:
    repo, payload = _payload()
    dispatcher = HttpWebhookDispatcher(
        "https://hooks.internal/deliver",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    with pytest.raises(httpx.HTTPStatusError):
        await dispatcher.dispatch(repo, HookEvent.DELETE, payload)


@pytest.mark.asyncio
async def test_cloud_tasks_dispatcher_creates_http_task() -> None:
    repo, payload = _payload()
    mock_client = MagicMock()
    mock_client.queue_path.return_value = "projects/p/locations/l/queues/webhooks"
    mock_client.create_task.return_value.name = "tasks/123"

    with patch("google.cloud.tasks_v2.CloudTasksClient", return_value=mock_client):
        dispatcher = CloudTasksWebhookDispatcher(
            "p", "l", "webhooks", "https://hooks.internal/deliver"
        )
        await dispatcher.dispatch(repo, HookEvent.DELETE, payload)

    mock_client.queue_path.assert_called_once_with("p", "l", "webhooks")
    request = mock_client.create_task.call_args.args[0]
    assert request.parent == "projects/p/locations/l/queues/webhooks"
    assert request.task.http_request.url == "https://hooks.internal/deliver"
    assert json.loads(request.task.http_request.body)["event"] == "delete"
