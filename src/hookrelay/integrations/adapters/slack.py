"""Slack adapter: renders domain events as Block Kit inside a coloured attachment."""

from __future__ import annotations

import json
from datetime import datetime

from hookrelay.integrations.adapters.base import (
    BRAND_NAME,
    TEST_EVENT,
    DestinationConfig,
    OutboundJob,
    OutboundRequest,
    as_list,
    as_mapping,
    as_text,
    chat_headers,
    event_action,
    event_emoji,
    format_date,
    humanize_event,
    member_joined,
    task_link,
    truncate,
)

BRAND_COLOR = "#F59E0B"
TEST_COLOR = "#8B5CF6"
MESSAGE_COLOR = "#3B82F6"
COMMENT_COLOR = "#8B5CF6"
FILE_COLOR = "#10B981"
SUCCESS_COLOR = "#22C55E"
DANGER_COLOR = "#EF4444"

PRIORITY_COLORS: dict[str, str] = {
    "urgent": "#EF4444",
    "high": "#F97316",
    "medium": "#F59E0B",
    "low": "#22C55E",
    "none": "#6B7280",
}

PRIORITY_EMOJIS: dict[str, str] = {
    "urgent": "\U0001f534",
    "high": "\U0001f7e0",
    "medium": "\U0001f7e1",
}
_LOW_PRIORITY_EMOJI = "\U0001f7e2"

_ARROW = "\u27a1\ufe0f"


def _header(text: str) -> dict:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def _section(text: str) -> dict:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> dict:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _mrkdwn(text: str) -> dict:
    return {"type": "mrkdwn", "text": text}


def _task_fields(event: str, payload: dict) -> list[dict]:
    fields: list[dict] = []

    if event == "task.status_changed":
        fields.append(_mrkdwn(
            f"*\U0001f504 Status Change:*\n`{payload.get('oldStatus')}` {_ARROW} `{payload.get('newStatus')}`"
        ))
    elif event == "task.priority_changed":
        fields.append(_mrkdwn(
            f"*\u26a1 Priority Change:*\n`{payload.get('oldPriority')}` {_ARROW} `{payload.get('newPriority')}`"
        ))
    elif event == "task.due_date_changed":
        old = format_date(payload.get("oldDueDate"))
        new = format_date(payload.get("newDueDate"))
        fields.append(_mrkdwn(f"*\U0001f4c5 Due Date Change:*\n{old} {_ARROW} {new}"))
    elif event == "task.assigned":
        old = payload.get("oldAssignee") or "Unassigned"
        new = payload.get("newAssignee") or "Unassigned"
        fields.append(_mrkdwn(f"*\U0001f464 Assignee Change:*\n{old} {_ARROW} {new}"))
    elif event == "task.updated" and as_list(payload.get("updatedFields")):
        updated = [str(name) for name in payload["updatedFields"]]
        changed = ", ".join(name[:1].upper() + name[1:] for name in updated)
        fields.append(_mrkdwn(f"*\u270f\ufe0f Fields Updated:*\n{changed}"))
        if "title" in updated:
            fields.append(_mrkdwn(f"*Old Title:*\n{payload.get('oldTitle')}"))
            fields.append(_mrkdwn(f"*New Title:*\n{payload.get('title')}"))

    if payload.get("status") and event != "task.status_changed":
        fields.append(_mrkdwn(f"*\U0001f4ca Status:*\n`{payload['status']}`"))
    if payload.get("priority") and event != "task.priority_changed":
        priority = payload["priority"]
        fields.append(_mrkdwn(
            f"*\u26a1 Priority:*\n{PRIORITY_EMOJIS.get(as_text(priority), _LOW_PRIORITY_EMOJI)} {priority}"
        ))
    if payload.get("assignee") and event != "task.assigned":
        fields.append(_mrkdwn(f"*\U0001f464 Assignee:*\n{payload['assignee']}"))
    if payload.get("dueDate") and event != "task.due_date_changed":
        fields.append(_mrkdwn(f"*\U0001f4c5 Due Date:*\n{format_date(payload['dueDate'])}"))

    return fields


def _build_task(job: OutboundJob, config: DestinationConfig, payload: dict, emoji: str) -> tuple[str, str, list[dict]]:
    event = job.event
    action = event_action(event)
    action_text = action[:1].upper() + action[1:].replace("_", " ")
    title = payload.get("title")

    text = f"{emoji} Task {action_text}: {title or 'Untitled'}"
    color = PRIORITY_COLORS.get(as_text(payload.get("priority")), BRAND_COLOR)

    blocks = [_header(f"{emoji} Task {action_text}")]
    if title:
        blocks.append(_section(f"*{title}*"))

    fields = _task_fields(event, payload)
    if fields:
        blocks.append({"type": "section", "fields": fields})

    description = payload.get("description")
    if description and event == "task.created":
        blocks.append(_section(f"*\U0001f4dd Description:*\n{truncate(str(description), 200)}"))

    link = _task_link_text(job, config, payload)
    if link:
        blocks.append(_context(link))

    return text, color, blocks


def _task_link_text(job: OutboundJob, config: DestinationConfig, payload: dict) -> str | None:
    url = task_link(config, job, payload.get("taskId") or payload.get("id"))
    return f"<{url}|Open in {BRAND_NAME}>" if url else None


def _build_blocks(job: OutboundJob, config: DestinationConfig, now: datetime) -> tuple[str, str, list[dict]]:
    event = job.event
    payload = as_mapping(job.payload)
    emoji = event_emoji(event)

    if event == TEST_EVENT:
        text = f"{emoji} Test Webhook - Connection successful!"
        blocks = [
            _header(f"{emoji} Test Webhook"),
            _section(as_text(payload.get("message")) or f"This is a test notification from {BRAND_NAME}."),
            {
                "type": "section",
                "fields": [
                    _mrkdwn("*Status:*\n\u2705 Connection successful"),
                    _mrkdwn(f"*Timestamp:*\n{now.strftime('%Y-%m-%d %H:%M:%S UTC')}"),
                ],
            },
        ]
        return text, TEST_COLOR, blocks

    if event.startswith("task."):
        return _build_task(job, config, payload, emoji)

    if event in ("message.sent", "message.updated"):
        message = payload.get("message")
        if isinstance(message, str):
            content = message
        else:
            content = as_mapping(message).get("content") or payload.get("content") or "New message"
        label = "New Message" if event == "message.sent" else "Message Updated"
        blocks = [_header(f"{emoji} {label}"), _section(f"> {truncate(str(content), 300)}")]
        sender = payload.get("sender") or payload.get("userName")
        if sender:
            blocks.insert(1, _context(f"*From:* {sender}"))
        return f"{emoji} {label}", MESSAGE_COLOR, blocks

    if event == "comment.added":
        content = payload.get("content")
        blocks = [
            _header(f"{emoji} New Comment"),
            _section(f"> {str(content)[:300]}" if content else "A new comment was added."),
        ]
        if payload.get("taskTitle"):
            blocks.append(_context(f"*On Task:* {payload['taskTitle']}"))
        return f"{emoji} New Comment", COMMENT_COLOR, blocks

    if event in ("file.uploaded", "file.deleted"):
        file_name = payload.get("name") or payload.get("fileName") or "Unknown file"
        if event == "file.uploaded":
            blocks = [_header(f"{emoji} File Uploaded"), _section(f"*{file_name}*")]
            return f"{emoji} File Uploaded", FILE_COLOR, blocks
        blocks = [_header(f"{emoji} File Deleted"), _section(f"*{file_name}* was deleted.")]
        return f"{emoji} File Deleted", DANGER_COLOR, blocks

    if event.startswith("member."):
        joined = member_joined(event)
        label = f"{emoji} Member {'Joined' if joined else 'Left'}"
        verb = "joined" if joined else "left"
        user_name = payload.get("userName")
        blocks = [
            _header(label),
            _section(f"*{user_name}* has {verb} the workspace." if user_name else f"A member has {verb}."),
        ]
        return label, SUCCESS_COLOR if joined else DANGER_COLOR, blocks

    text = f"{emoji} Event: {humanize_event(event)}"
    return text, BRAND_COLOR, [_header(text), _section(f"New activity on {BRAND_NAME}")]


def prepare_slack_request(job: OutboundJob, config: DestinationConfig, now: datetime) -> OutboundRequest:
    """Build a Slack incoming-webhook request: fallback ``text`` plus one attachment."""
    text, color, blocks = _build_blocks(job, config, now)
    blocks.append({"type": "divider"})
    blocks.append(_context(f"\U0001f4ca _Sent from {BRAND_NAME}_"))

    body = {"text": text, "attachments": [{"color": color, "blocks": blocks}]}
    return OutboundRequest(
        url=config.url,
        method="POST",
        headers=chat_headers(config),
        body=json.dumps(body, ensure_ascii=False),
    )
