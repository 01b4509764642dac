"""String enums for webhook subscriptions and queue rows."""

from enum import StrEnum


class AdapterType(StrEnum):
    GENERIC = "generic"
    DISCORD = "discord"
    SLACK = "slack"


class JobStatus(StrEnum):
    PENDING = "pending"
    FAILED = "failed"


class DeliveryOutcome(StrEnum):
    DELIVERED = "delivered"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    ORPHANED = "orphaned"
    SKIPPED = "skipped"


WILDCARD_EVENT = "*"
