"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from hookrelay.db.models.webhook import DeliveryRecordRow, SubscriptionRow, WebhookJobRow

__all__ = [
    "SubscriptionRow",
    "WebhookJobRow",
    "DeliveryRecordRow",
]
