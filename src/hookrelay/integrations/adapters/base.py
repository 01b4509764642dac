"""Shared types and formatting helpers for outbound webhook adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hookrelay.config import Settings


@dataclass(frozen=True)
class OutboundJob:
    """The parts of a queued job an adapter may look at."""

    id: str
    event: str
    payload: Any
    workspace_id: str | None = None


@dataclass(frozen=True)
class DestinationConfig:
    """Subscription-level settings an adapter renders against."""

    url: str
    adapter_type: str | None
    secret: str = ""
    workspace_id: str | None = None
    silent_mode: bool = False
    app_url: str = ""
    user_agent: str = "hookrelay-worker/1.0"

    @classmethod
    def from_subscription(cls, subscription, settings: Settings) -> DestinationConfig:
        return cls(
            url=subscription.url,
            adapter_type=subscription.adapter_type,
            secret=subscription.secret or "",
            workspace_id=subscription.workspace_id,
            silent_mode=bool(subscription.silent_mode),
            app_url=settings.app_url.rstrip("/"),
            user_agent=settings.user_agent,
        )


@dataclass(frozen=True)
class OutboundRequest:
    """A fully rendered HTTP request, ready to send."""

    url: str
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""


EVENT_EMOJIS: dict[str, str] = {
    "task.created": "\U0001f4dd",  # 📝
    "task.updated": "\u270f\ufe0f",  # ✏️
    "task.deleted": "\U0001f5d1\ufe0f",  # 🗑️
    "task.status_changed": "\U0001f504",  # 🔄
    "task.priority_changed": "\u26a1",  # ⚡
    "task.assigned": "\U0001f464",  # 👤
    "task.due_date_changed": "\U0001f4c5",  # 📅
    "subtask.created": "\U0001f528",  # 🔨
    "subtask.updated": "\U0001f6e0\ufe0f",  # 🛠️
    "subtask.completed": "\u2705",  # ✅
    "comment.added": "\U0001f4ac",  # 💬
    "file.uploaded": "\U0001f4ce",  # 📎
    "file.deleted": "\U0001f5d1\ufe0f",
    "member.added": "\U0001f44b",  # 👋
    "member.joined": "\U0001f44b",
    "member.removed": "\U0001f44b",
    "message.sent": "\U0001f4ac",
    "message.updated": "\u270f\ufe0f",
    "message.deleted": "\U0001f5d1\ufe0f",
    "webhook.test": "\U0001f9ea",  # 🧪
}
DEFAULT_EMOJI = "\U0001f4e2"  # 📢

TEST_EVENT = "webhook.test"
BRAND_NAME = "TaskDashboard"


def event_emoji(event: str) -> str:
    return EVENT_EMOJIS.get(event, DEFAULT_EMOJI)


def humanize_event(event: str) -> str:
    """``"folder.created"`` -> ``"Folder Created"``."""
    return " ".join(part.replace("_", " ").title() for part in event.split("."))


def event_action(event: str) -> str:
    """Return the part after the namespace: ``"task.status_changed"`` -> ``"status_changed"``."""
    return event.split(".", 1)[1] if "." in event else event


def member_joined(event: str) -> bool:
    return event_action(event) in ("added", "joined")


def as_mapping(payload: Any) -> dict:
    """Chat templates read fields by name; non-object payloads render as empty."""
    return payload if isinstance(payload, dict) else {}


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def as_text(value: Any) -> str | None:
    """Keys used for lookups (priority names and the like) only count when they are strings."""
    return value if isinstance(value, str) else None


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def format_date(value: Any) -> str:
    """Render an ISO timestamp as a calendar date, or ``None`` when unset."""
    if not value:
        return "None"
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return str(value)


def format_file_size(size: Any) -> str:
    try:
        size = float(size)
    except (TypeError, ValueError):
        return str(size)
    if size < 1024:
        return f"{int(size)} B"
    if size < 1024 ** 2:
        return f"{size / 1024:.1f} KB"
    if size < 1024 ** 3:
        return f"{size / 1024 ** 2:.1f} MB"
    return f"{size / 1024 ** 3:.1f} GB"


def task_link(config: DestinationConfig, job: OutboundJob, task_id: Any) -> str | None:
    workspace_id = job.workspace_id or config.workspace_id
    if not config.app_url or not workspace_id or not task_id:
        return None
    return f"{config.app_url}/workspaces/{workspace_id}/tasks/{task_id}"


def chat_headers(config: DestinationConfig) -> dict[str, str]:
    """Headers for chat platforms: JSON, no signature."""
    return {
        "Content-Type": "application/json",
        "User-Agent": config.user_agent,
    }
