"""Tests for adapter selection and per-platform request rendering."""

import json
from datetime import datetime, timezone

import pytest

from hookrelay.events.signing import verify
from hookrelay.integrations.adapters import DestinationConfig, OutboundJob, adapt, resolve_adapter_type
from hookrelay.models.enums import AdapterType

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


def _config(adapter_type="generic", **kwargs):
    return DestinationConfig(
        url="https://receiver.example/hook",
        adapter_type=adapter_type,
        secret="s3cr3t",
        workspace_id="W1",
        app_url="https://app.example",
        **kwargs,
    )


def _job(event="task.created", payload=None):
    return OutboundJob(id="whj_1", event=event, payload=payload if payload is not None else {"id": "t1", "title": "Hi"})


def test_generic_request_is_signed_json():
    request = adapt(_job(), _config(), now=NOW)

    assert request.method == "POST"
    assert request.url == "https://receiver.example/hook"
    assert request.body == '{"id":"t1","title":"Hi"}'
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["X-Webhook-Event"] == "task.created"
    assert request.headers["X-Webhook-Delivery"] == "whj_1"
    assert request.headers["X-Webhook-Timestamp"] == str(NOW_MS)
    assert request.headers["X-Webhook-Signature"].startswith(f"t={NOW_MS},v1=")
    assert verify(request.body, "s3cr3t", request.headers["X-Webhook-Signature"], now_ms=NOW_MS)


@pytest.mark.parametrize("payload", ["hello", 42, None, [1, "two"]])
def test_generic_body_is_json_for_any_payload(payload):
    request = adapt(OutboundJob(id="whj_1", event="task.created", payload=payload), _config(), now=NOW)

    assert json.loads(request.body) == payload
    assert verify(request.body, "s3cr3t", request.headers["X-Webhook-Signature"], now_ms=NOW_MS)


def test_generic_string_payload_is_quoted():
    request = adapt(_job(payload="hello"), _config(), now=NOW)
    assert request.body == '"hello"'


@pytest.mark.parametrize("adapter_type", ["teams", "", None])
def test_unknown_adapter_falls_back_to_generic(adapter_type):
    assert resolve_adapter_type(adapter_type) is AdapterType.GENERIC
    request = adapt(_job(), _config(adapter_type), now=NOW)
    assert "X-Webhook-Signature" in request.headers


def test_discord_task_created_embed():
    payload = {"id": "t1", "title": "Hi", "statusName": "Todo", "priorityName": "High", "priorityColor": "#F97316"}
    request = adapt(_job(payload=payload), _config("discord"), now=NOW)
    body = json.loads(request.body)

    assert "X-Webhook-Signature" not in request.headers
    assert "flags" not in body
    embed = body["embeds"][0]
    assert embed["title"].endswith("Task Created")
    assert embed["description"] == "**Hi**"
    assert embed["color"] == 0xF97316
    assert embed["url"] == "https://app.example/workspaces/W1/tasks/t1"
    assert embed["timestamp"] == NOW.isoformat()
    assert {"name": "Status", "value": "Todo", "inline": True} in embed["fields"]


def test_discord_silent_mode_sets_flag():
    request = adapt(_job(), _config("discord", silent_mode=True), now=NOW)
    assert json.loads(request.body)["flags"] == 4096


def test_discord_unknown_event_uses_humanized_title():
    request = adapt(_job(event="folder.created", payload={}), _config("discord"), now=NOW)
    embed = json.loads(request.body)["embeds"][0]
    assert embed["title"].endswith("Event: Folder Created")
    assert embed["description"] == "New activity on TaskDashboard"


def test_slack_task_attachment_colored_by_priority():
    payload = {"id": "t1", "title": "Hi", "priority": "urgent", "status": "todo"}
    request = adapt(_job(payload=payload), _config("slack"), now=NOW)
    body = json.loads(request.body)

    assert "X-Webhook-Signature" not in request.headers
    assert body["text"].endswith("Task Created: Hi")
    attachment = body["attachments"][0]
    assert attachment["color"] == "#EF4444"
    blocks = attachment["blocks"]
    assert blocks[0]["type"] == "header"
    assert blocks[-2] == {"type": "divider"}
    assert blocks[-1]["type"] == "context"


def test_slack_status_change_fields():
    payload = {"title": "Hi", "oldStatus": "todo", "newStatus": "done"}
    request = adapt(_job(event="task.status_changed", payload=payload), _config("slack"), now=NOW)
    blocks = json.loads(request.body)["attachments"][0]["blocks"]
    fields = next(block["fields"] for block in blocks if "fields" in block)
    assert "`todo`" in fields[0]["text"] and "`done`" in fields[0]["text"]


def test_slack_member_left():
    request = adapt(
        _job(event="member.removed", payload={"userName": "Ana"}), _config("slack"), now=NOW
    )
    body = json.loads(request.body)
    assert body["attachments"][0]["color"] == "#EF4444"
    assert "*Ana* has left the workspace." in json.dumps(body)


def test_chat_adapters_tolerate_non_object_payloads():
    for adapter_type in ("discord", "slack"):
        request = adapt(_job(payload=["not", "an", "object"]), _config(adapter_type), now=NOW)
        assert json.loads(request.body)


ODD_FIELDS = {
    "title": "T",
    "priority": ["high"],
    "priorityColor": {"hex": "#fff"},
    "updatedFields": 5,
    "message": {"text": "hi"},
}


@pytest.mark.parametrize("adapter_type", ["discord", "slack"])
@pytest.mark.parametrize("event", ["task.created", "task.updated", "webhook.test"])
def test_chat_adapters_tolerate_non_string_fields(adapter_type, event):
    request = adapt(_job(event=event, payload=ODD_FIELDS), _config(adapter_type), now=NOW)
    assert json.loads(request.body)


def test_slack_unhashable_priority_uses_brand_color():
    request = adapt(_job(payload={"title": "T", "priority": ["high"]}), _config("slack"), now=NOW)
    body = json.loads(request.body)
    assert body["attachments"][0]["color"] == "#F59E0B"
    assert "\U0001f7e2 ['high']" in json.dumps(body, ensure_ascii=False)


def test_discord_task_updated_ignores_non_list_fields():
    payload = {"title": "T", "updatedFields": "title"}
    request = adapt(_job(event="task.updated", payload=payload), _config("discord"), now=NOW)
    [field] = json.loads(request.body)["embeds"][0]["fields"]
    assert field["value"] == "Details updated"
