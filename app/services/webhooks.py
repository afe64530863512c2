"""Hand-off of built webhook payloads to the delivery subsystem.

Delivery and retries happen elsewhere; a dispatcher only has to get the
event, the repository and the JSON payload to it.  ``CloudTasksWebhookDispatcher``
enqueues an HTTP task through ``google-cloud-tasks`` (the sync client is run
in ``asyncio.to_thread``), ``HttpWebhookDispatcher`` posts straight to the
delivery service with ``httpx``, and ``InMemoryWebhookDispatcher`` records
deliveries for tests.
"""

from __future__ import annotations

import asyncio
import json
from typing import Protocol

import httpx
import structlog
from pydantic import BaseModel

from app.db.models import Repository
from app.schemas.webhooks import HookEvent

logger = structlog.get_logger()


def delivery_body(repo: Repository, event: HookEvent, payload: BaseModel) -> dict:
    """Envelope sent to the delivery subsystem."""
    return {
        "event": str(event),
        "repo_id": repo.id,
        "repo_full_name": repo.full_name,
        "payload": payload.model_dump(mode="json"),
    }


class WebhookDispatcher(Protocol):
    """Protocol for handing a webhook payload to delivery."""

    async def dispatch(self, repo: Repository, event: HookEvent, payload: BaseModel) -> None:
        """Queue ``payload`` for every hook of ``repo`` subscribed to ``event``."""
        ...


class CloudTasksWebhookDispatcher:
    """Production dispatcher backed by Google Cloud Tasks.

    ``google.cloud.tasks_v2`` is imported lazily so the module loads without
    the GCP SDK installed.
    """

    def __init__(self, project: str, location: str, queue: str, delivery_url: str) -> None:
        from google.cloud import tasks_v2

        self._client = tasks_v2.CloudTasksClient()
        self._parent = self._client.queue_path(project, location, queue)
        self._delivery_url = delivery_url

    async def dispatch(self, repo: Repository, event: HookEvent, payload: BaseModel) -> None:
        from google.cloud import tasks_v2

        task = tasks_v2.Task(
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=self._delivery_url,
                headers={"Content-Type": "application/json", "X-Hook-Event": str(event)},
                body=json.dumps(delivery_body(repo, event, payload)).encode(),
            ),
        )
        response = await asyncio.to_thread(
            self._client.create_task,
            tasks_v2.CreateTaskRequest(parent=self._parent, task=task),
        )
        logger.info(
            "webhook_enqueued", hook_event=str(event), repo_id=repo.id, task=response.name
        )


class HttpWebhookDispatcher:
    """Posts payloads directly to a delivery service endpoint."""

    def __init__(
        self,
        delivery_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._delivery_url = delivery_url
        self._timeout = timeout
        self._transport = transport

    async def dispatch(self, repo: Repository, event: HookEvent, payload: BaseModel) -> None:
        """Post the envelope.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses.
        """
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                self._delivery_url,
                json=delivery_body(repo, event, payload),
                headers={"X-Hook-Event": str(event)},
            )
        resp.raise_for_status()
        logger.info("webhook_handed_off", hook_event=str(event), repo_id=repo.id)


class InMemoryWebhookDispatcher:
    """Test double that records dispatched payloads for assertions."""

    def __init__(self) -> None:
        self.deliveries: list[dict] = []

    async def dispatch(self, repo: Repository, event: HookEvent, payload: BaseModel) -> None:
        self.deliveries.append({"event": event, "repo_id": repo.id, "payload": payload})

    def events(self) -> list[HookEvent]:
        return [d["event"] for d in self.deliveries]
