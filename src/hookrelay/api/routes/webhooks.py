"""Webhook subscription management routes (workspace administrators)."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hookrelay.dependencies import get_current_user, get_db
from hookrelay.errors.exceptions import ConflictError, NotFoundError, ValidationError
from hookrelay.integrations.adapters.base import TEST_EVENT
from hookrelay.models.webhook import (
    DeliveryRecordModel,
    SubscriptionCreate,
    SubscriptionCreatedModel,
    SubscriptionModel,
    SubscriptionUpdate,
)
from hookrelay.repositories.delivery_repo import DeliveryRecordRepository
from hookrelay.repositories.subscription_repo import SubscriptionRepository
from hookrelay.repositories.webhook_job_repo import WebhookJobRepository
from hookrelay.services.id_generator import generate_id, generate_secret

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])

DELIVERY_LOG_LIMIT = 50


async def _get_subscription_or_404(webhook_id: str, db: AsyncSession):
    row = await SubscriptionRepository(db).get(webhook_id)
    if not row:
        raise NotFoundError("Webhook", webhook_id)
    return row


def _sample_test_payload() -> dict:
    return {
        "id": "test-123",
        "title": "Test Webhook Task",
        "status": "in_progress",
        "priority": "high",
        "description": "This is a test notification from TaskDashboard.",
        "message": "Hello! This is a test message to verify your integration.",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/workspaces/{workspace_id}/webhooks", status_code=200)
async def list_webhooks(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
) -> list[SubscriptionModel]:
    rows = await SubscriptionRepository(db).list_by_workspace(workspace_id)
    return [SubscriptionModel.model_validate(row, from_attributes=True) for row in rows]


@router.post("/workspaces/{workspace_id}/webhooks", status_code=201)
async def create_webhook(
    workspace_id: str,
    body: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
) -> SubscriptionCreatedModel:
    """Register a destination. The signing secret is only returned here."""
    row = await SubscriptionRepository(db).create(
        id=generate_id("whk_"),
        workspace_id=workspace_id,
        url=body.url,
        adapter_type=body.adapter_type.value,
        secret=generate_secret(),
        events=list(body.events),
        is_active=body.is_active,
        description=body.description,
        silent_mode=body.silent_mode,
        failure_count=0,
        created_by=user_id,
    )
    await db.commit()
    await db.refresh(row)

    logger.info("Created webhook %s for workspace %s (%s)", row.id, workspace_id, row.adapter_type)
    return SubscriptionCreatedModel.model_validate(row, from_attributes=True)


@router.patch("/webhooks/{webhook_id}", status_code=200)
async def update_webhook(
    webhook_id: str,
    body: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
) -> SubscriptionModel:
    row = await _get_subscription_or_404(webhook_id, db)

    updates = body.model_dump(exclude_unset=True)
    if updates.get("adapter_type") is not None:
        updates["adapter_type"] = str(updates["adapter_type"])
    # Explicit nulls for required columns mean "leave unchanged"
    for field in ("url", "adapter_type", "events", "is_active", "silent_mode"):
        if field in updates and updates[field] is None:
            del updates[field]

    if not updates:
        raise ValidationError("No updatable fields provided")

    await SubscriptionRepository(db).update(row, **updates)
    await db.commit()
    await db.refresh(row)

    return SubscriptionModel.model_validate(row, from_attributes=True)


@router.delete("/webhooks/{webhook_id}", status_code=200)
async def delete_webhook(
    webhook_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
) -> dict:
    row = await _get_subscription_or_404(webhook_id, db)

    dropped = await WebhookJobRepository(db).delete_for_subscription(webhook_id)
    await SubscriptionRepository(db).delete(row)
    await db.commit()

    logger.info("Deleted webhook %s (%d queued job(s) dropped)", webhook_id, dropped)
    return {"id": webhook_id, "deleted": True, "dropped_jobs": dropped}


@router.get("/webhooks/{webhook_id}/deliveries", status_code=200)
async def list_deliveries(
    webhook_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
) -> list[DeliveryRecordModel]:
    await _get_subscription_or_404(webhook_id, db)
    rows = await DeliveryRecordRepository(db).list_by_subscription(webhook_id, limit=DELIVERY_LOG_LIMIT)
    return [DeliveryRecordModel.model_validate(row, from_attributes=True) for row in rows]


@router.post("/webhooks/{webhook_id}/test", status_code=202)
async def test_webhook(
    webhook_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user),
) -> dict:
    """Enqueue a ``webhook.test`` delivery with a fixed sample payload."""
    row = await _get_subscription_or_404(webhook_id, db)
    if not row.is_active:
        raise ConflictError(f"Webhook '{webhook_id}' is inactive")

    jobs = await WebhookJobRepository(db).enqueue([row.id], TEST_EVENT, _sample_test_payload())
    await db.commit()

    return {"job_id": jobs[0].id, "message": "Test delivery enqueued"}
