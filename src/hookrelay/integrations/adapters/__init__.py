"""Adapter registry: maps adapter_type to the function that renders the request."""

import logging
from datetime import datetime, timezone

from hookrelay.integrations.adapters.base import DestinationConfig, OutboundJob, OutboundRequest
from hookrelay.integrations.adapters.discord import prepare_discord_request
from hookrelay.integrations.adapters.generic import prepare_generic_request
from hookrelay.integrations.adapters.slack import prepare_slack_request
from hookrelay.models.enums import AdapterType

logger = logging.getLogger(__name__)

__all__ = [
    "DestinationConfig",
    "OutboundJob",
    "OutboundRequest",
    "adapt",
    "resolve_adapter_type",
]


def resolve_adapter_type(value: str | None) -> AdapterType:
    """Map a stored adapter_type to a known adapter, falling back to generic."""
    try:
        return AdapterType(value)
    except ValueError:
        logger.warning("Unknown adapter type %r, using generic", value)
        return AdapterType.GENERIC


def adapt(job: OutboundJob, config: DestinationConfig, now: datetime | None = None) -> OutboundRequest:
    """Render ``job`` for the platform named by ``config.adapter_type``.

    ``now`` fixes the signing timestamp and any displayed times; it
    defaults to the current time.
    """
    now = now or datetime.now(timezone.utc)
    match resolve_adapter_type(config.adapter_type):
        case AdapterType.DISCORD:
            return prepare_discord_request(job, config, now)
        case AdapterType.SLACK:
            return prepare_slack_request(job, config, now)
        case _:
            return prepare_generic_request(job, config, int(now.timestamp() * 1000))
