"""Discord adapter: renders domain events as a single rich embed.

Discord incoming webhooks are pre-authenticated by their URL, so the body
is never signed. ``silent_mode`` on the subscription sets the
SUPPRESS_NOTIFICATIONS message flag.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

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
    format_file_size,
    humanize_event,
    member_joined,
    task_link,
)

BRAND_COLOR = 0xF59E0B
TEST_COLOR = 0x8B5CF6
COMMENT_COLOR = 0x8B5CF6
FILE_COLOR = 0x10B981
SUCCESS_COLOR = 0x22C55E
DANGER_COLOR = 0xEF4444

SUPPRESS_NOTIFICATIONS = 4096

_ARROW = "\u27a1\ufe0f"


def _hex_color(value: Any, fallback: int) -> int:
    if not isinstance(value, str):
        return fallback
    try:
        return int(value.lstrip("#"), 16)
    except ValueError:
        return fallback


def _field(name: str, value: Any, inline: bool = True) -> dict:
    # Discord rejects embeds with empty field values
    return {"name": name, "value": str(value) if value not in (None, "") else "-", "inline": inline}


def _build_task_embed(embed: dict, job: OutboundJob, config: DestinationConfig, payload: dict, emoji: str) -> None:
    event = job.event
    title = payload.get("title") or "Untitled"
    url = task_link(config, job, payload.get("taskId") or payload.get("id"))
    if url:
        embed["url"] = url

    if event == "task.created":
        embed["title"] = f"{emoji} Task Created"
        embed["description"] = f"**{title}**"
        embed["color"] = _hex_color(payload.get("priorityColor"), BRAND_COLOR)
        embed["fields"] = [
            _field("Status", payload.get("statusName") or payload.get("status")),
            _field("Priority", payload.get("priorityName") or payload.get("priority")),
        ]
        if payload.get("assigneeId"):
            embed["fields"].append(_field("Assignee", payload.get("assigneeName") or "Unassigned"))
    elif event == "task.priority_changed":
        embed["title"] = f"{emoji} Priority Changed"
        embed["description"] = f"Priority for **{title}** was updated."
        embed["color"] = _hex_color(payload.get("newPriorityColor"), BRAND_COLOR)
        embed["fields"] = [
            _field("Old Priority", payload.get("oldPriorityName") or payload.get("oldPriority")),
            _field("New Priority", payload.get("newPriorityName") or payload.get("newPriority")),
        ]
    elif event == "task.status_changed":
        embed["title"] = f"{emoji} Status Changed"
        embed["description"] = f"Status for **{title}** was updated."
        embed["fields"] = [
            _field("From", payload.get("oldStatus")),
            _field("To", payload.get("newStatus")),
        ]
    elif event == "task.updated":
        embed["title"] = f"{emoji} Task Updated"
        embed["description"] = f"**{title}** was updated."
        updated = as_list(payload.get("updatedFields"))
        changes = [name.capitalize() for name in ("title", "description", "status") if name in updated]
        embed["fields"] = [_field("Changed Fields", ", ".join(changes) or "Details updated")]
        if payload.get("statusName"):
            embed["fields"].append(_field("Current Status", payload["statusName"]))
    elif event == "task.assigned":
        embed["title"] = f"{emoji} Assignee Changed"
        embed["description"] = f"Assignee for **{title}** was updated."
        old = payload.get("oldAssignee") or "Unassigned"
        new = payload.get("newAssignee") or "Unassigned"
        embed["fields"] = [_field("Change", f"{old} {_ARROW} {new}")]
    elif event == "task.due_date_changed":
        embed["title"] = f"{emoji} Due Date Changed"
        embed["description"] = f"Due date for **{title}** was updated."
        old = format_date(payload.get("oldDueDate"))
        new = format_date(payload.get("newDueDate"))
        embed["fields"] = [_field("Change", f"{old} {_ARROW} {new}")]
    else:
        embed["title"] = f"{emoji} Task {event_action(event).replace('_', ' ').capitalize()}"
        embed["description"] = f"**{title}**"


def _build_subtask_embed(embed: dict, event: str, payload: dict, emoji: str) -> None:
    title = payload.get("title") or "Untitled"
    parent = payload.get("taskTitle") or "a task"
    if event == "subtask.created":
        embed["title"] = f"{emoji} Subtask Created"
        embed["description"] = f"**{title}** added to **{parent}**"
        embed["fields"] = [
            _field("Status", payload.get("status")),
            _field("Priority", payload.get("priorityName") or payload.get("priority")),
        ]
    elif event == "subtask.completed":
        embed["title"] = f"{emoji} Subtask Completed"
        embed["description"] = f"\u2705 **{title}** in **{parent}** was completed."
        embed["color"] = SUCCESS_COLOR
    else:
        embed["title"] = f"{emoji} Subtask {event_action(event).replace('_', ' ').capitalize()}"
        embed["description"] = f"Subtask **{title}** in **{parent}** was updated."
        changes = payload.get("changes")
        if isinstance(changes, dict) and changes.get("from") and changes.get("to"):
            embed["fields"] = [_field("Change", f"{changes['from']} {_ARROW} {changes['to']}", inline=False)]


def _build_embed(job: OutboundJob, config: DestinationConfig, now: datetime) -> dict:
    event = job.event
    payload = as_mapping(job.payload)
    emoji = event_emoji(event)

    embed: dict = {
        "color": BRAND_COLOR,
        "timestamp": now.isoformat(),
        "footer": {"text": f"\U0001f4ca {BRAND_NAME}"},
    }

    if event == TEST_EVENT:
        embed["title"] = f"{emoji} Test Webhook"
        embed["description"] = as_text(payload.get("message")) or f"This is a test notification from {BRAND_NAME}."
        embed["color"] = TEST_COLOR
        embed["fields"] = [
            _field("\U0001f4cd Status", "\u2705 Connection successful"),
            _field("\u23f0 Timestamp", now.strftime("%Y-%m-%d %H:%M:%S UTC")),
        ]
    elif event.startswith("task."):
        _build_task_embed(embed, job, config, payload, emoji)
    elif event.startswith("subtask."):
        _build_subtask_embed(embed, event, payload, emoji)
    elif event == "comment.added":
        content = payload.get("content")
        embed["title"] = f"{emoji} New Comment"
        embed["description"] = f"> {str(content)[:300]}" if content else "A new comment was added."
        embed["color"] = COMMENT_COLOR
        if payload.get("taskTitle"):
            embed["fields"] = [_field("\U0001f4dd On Task", payload["taskTitle"])]
    elif event in ("file.uploaded", "file.deleted"):
        file_name = payload.get("name") or payload.get("fileName") or "Unknown file"
        if event == "file.uploaded":
            embed["title"] = f"{emoji} File Uploaded"
            embed["description"] = f"**{file_name}**"
            embed["color"] = FILE_COLOR
            if payload.get("size"):
                embed["fields"] = [_field("\U0001f4e6 Size", format_file_size(payload["size"]))]
        else:
            embed["title"] = f"{emoji} File Deleted"
            embed["description"] = f"**{file_name}** was deleted."
            embed["color"] = DANGER_COLOR
    elif event.startswith("member."):
        joined = member_joined(event)
        verb = "joined" if joined else "left"
        embed["title"] = f"{emoji} Member {'Joined' if joined else 'Left'}"
        user_name = payload.get("userName")
        embed["description"] = (
            f"**{user_name}** has {verb} the workspace." if user_name else f"A member has {verb}."
        )
        embed["color"] = SUCCESS_COLOR if joined else DANGER_COLOR
    elif event.startswith("message."):
        message = payload.get("message")
        content = message if isinstance(message, str) else (
            as_mapping(message).get("content") or payload.get("content") or "New message"
        )
        embed["title"] = f"{emoji} {'New Message' if event == 'message.sent' else humanize_event(event)}"
        embed["description"] = f"> {str(content)[:300]}"
        sender = payload.get("sender") or payload.get("userName")
        if sender:
            embed["fields"] = [_field("From", sender)]
    else:
        embed["title"] = f"{emoji} Event: {humanize_event(event)}"
        embed["description"] = f"New activity on {BRAND_NAME}"

    return embed


def prepare_discord_request(job: OutboundJob, config: DestinationConfig, now: datetime) -> OutboundRequest:
    """Build an ``{"embeds": [...]}`` request for a Discord incoming webhook."""
    body: dict = {"embeds": [_build_embed(job, config, now)]}
    if config.silent_mode:
        body["flags"] = SUPPRESS_NOTIFICATIONS

    return OutboundRequest(
        url=config.url,
        method="POST",
        headers=chat_headers(config),
        body=json.dumps(body, ensure_ascii=False),
    )
