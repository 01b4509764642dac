"""Tests for the webhook management, event intake and queue processing routes."""

import pytest
from sqlalchemy import select

from hookrelay.config import settings
from hookrelay.db.models import DeliveryRecordRow, WebhookJobRow
from hookrelay.events.trigger import drain_dispatches
from hookrelay.repositories.webhook_job_repo import WebhookJobRepository

ADMIN = {"X-User-Id": "usr_admin"}


async def _create(client, **overrides):
    body = {"url": "https://receiver.example/hook", "events": ["task.*"]}
    body.update(overrides)
    response = await client.post("/api/v1/workspaces/W1/webhooks", json=body, headers=ADMIN)
    assert response.status_code == 201, response.text
    return response.json()


async def _jobs(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(WebhookJobRow))
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_create_returns_secret_once(client):
    created = await _create(client, adapter_type="slack", description="Team channel")
    assert created["id"].startswith("whk_")
    assert created["secret"].startswith("whsec_")
    assert created["adapter_type"] == "slack"
    assert created["events"] == ["task.*"]
    assert created["created_by"] == "usr_admin"
    assert created["failure_count"] == 0

    response = await client.get("/api/v1/workspaces/W1/webhooks", headers=ADMIN)
    assert response.status_code == 200
    [listed] = response.json()
    assert listed["id"] == created["id"]
    assert "secret" not in listed


@pytest.mark.asyncio
async def test_requires_user_header(client):
    response = await client.get("/api/v1/workspaces/W1/webhooks")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "AUTHENTICATION_ERROR"
    assert error["trace_id"].startswith("trc_")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"url": "ftp://receiver.example/hook"},
        {"url": "https://receiver.example/hook", "adapter_type": "teams"},
        {"url": "https://receiver.example/hook", "events": ["Task Created"]},
        {"url": "https://receiver.example/hook", "secret": "mine"},
    ],
)
async def test_create_rejects_invalid_body(client, body):
    response = await client.post("/api/v1/workspaces/W1/webhooks", json=body, headers=ADMIN)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_update_webhook(client):
    created = await _create(client)
    response = await client.patch(
        f"/api/v1/webhooks/{created['id']}",
        json={"is_active": False, "events": ["*"], "silent_mode": True},
        headers=ADMIN,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is False
    assert data["events"] == ["*"]
    assert data["silent_mode"] is True
    assert data["url"] == created["url"]


@pytest.mark.asyncio
async def test_update_without_fields_is_rejected(client):
    created = await _create(client)
    response = await client.patch(f"/api/v1/webhooks/{created['id']}", json={"url": None}, headers=ADMIN)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_update_unknown_webhook_is_404(client):
    response = await client.patch("/api/v1/webhooks/whk_missing", json={"is_active": False}, headers=ADMIN)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_delete_webhook_drops_queued_jobs(client, session_factory):
    created = await _create(client)
    response = await client.post(f"/api/v1/webhooks/{created['id']}/test", headers=ADMIN)
    assert response.status_code == 202

    response = await client.delete(f"/api/v1/webhooks/{created['id']}", headers=ADMIN)
    assert response.status_code == 200
    assert response.json() == {"id": created["id"], "deleted": True, "dropped_jobs": 1}
    assert await _jobs(session_factory) == []

    response = await client.get("/api/v1/workspaces/W1/webhooks", headers=ADMIN)
    assert response.json() == []


@pytest.mark.asyncio
async def test_test_endpoint_enqueues_sample_event(client, session_factory):
    created = await _create(client)
    response = await client.post(f"/api/v1/webhooks/{created['id']}/test", headers=ADMIN)
    assert response.status_code == 202

    async with session_factory() as session:
        [job] = await WebhookJobRepository(session).list_by_subscription(created["id"])
    assert job.id == response.json()["job_id"]
    assert job.event == "webhook.test"
    assert job.payload["title"] == "Test Webhook Task"


@pytest.mark.asyncio
async def test_test_endpoint_rejects_inactive_webhook(client):
    created = await _create(client, is_active=False)
    response = await client.post(f"/api/v1/webhooks/{created['id']}/test", headers=ADMIN)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_publish_event_fans_out(client, session_factory):
    await _create(client, events=["task.*"])
    await _create(client, events=["comment.added"])

    response = await client.post(
        "/api/v1/workspaces/W1/events",
        json={"event": "task.created", "payload": {"id": "t1", "title": "Hi"}},
        headers=ADMIN,
    )
    assert response.status_code == 202
    await drain_dispatches()

    [job] = await _jobs(session_factory)
    assert job.event == "task.created"
    assert job.payload == {"id": "t1", "title": "Hi"}


@pytest.mark.asyncio
async def test_queue_process_requires_token(client, monkeypatch):
    monkeypatch.setattr(settings, "worker_token", "")
    response = await client.post("/api/v1/webhooks/queue/process")
    assert response.status_code == 403

    monkeypatch.setattr(settings, "worker_token", "tok")
    response = await client.post("/api/v1/webhooks/queue/process")
    assert response.status_code == 401
    response = await client.post("/api/v1/webhooks/queue/process", headers={"X-Worker-Token": "nope"})
    assert response.status_code == 403
    response = await client.post(
        "/api/v1/webhooks/queue/process", headers={"X-Worker-Token": "t\u00f6k".encode("utf-8")}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_queue_process_delivers_and_logs(client, session_factory, transport, monkeypatch):
    monkeypatch.setattr(settings, "worker_token", "tok")
    monkeypatch.setattr(settings, "worker_concurrency", 1)
    created = await _create(client)
    await client.post(f"/api/v1/webhooks/{created['id']}/test", headers=ADMIN)

    response = await client.post("/api/v1/webhooks/queue/process", headers={"X-Worker-Token": "tok"})
    assert response.status_code == 200
    counts = response.json()
    assert counts["claimed"] == 1
    assert counts["delivered"] == 1
    assert len(transport.requests) == 1

    response = await client.get(f"/api/v1/webhooks/{created['id']}/deliveries", headers=ADMIN)
    assert response.status_code == 200
    [record] = response.json()
    assert record["event"] == "webhook.test"
    assert record["response_status"] == 200
    assert record["attempt_index"] == 0

    async with session_factory() as session:
        assert (await session.execute(select(DeliveryRecordRow))).scalars().all()
