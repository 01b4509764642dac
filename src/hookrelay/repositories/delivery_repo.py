"""Delivery log repository.

Append-only: rows are written once per attempt and never updated. The
worker never reads them back; they exist for operators and integrators.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hookrelay.db.models.webhook import DeliveryRecordRow
from hookrelay.repositories.base import BaseRepository
from hookrelay.services.id_generator import generate_id


class DeliveryRecordRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, DeliveryRecordRow)

    async def record(
        self,
        subscription_id: str,
        job_id: str | None,
        event: str,
        payload: Any,
        request_headers: dict[str, str] | None,
        response_status: int | None,
        response_body: str | None,
        duration_ms: int,
        attempt_index: int,
    ) -> DeliveryRecordRow:
        """Append a record for one delivery attempt."""
        return await self.create(
            id=generate_id("dlv_"),
            subscription_id=subscription_id,
            job_id=job_id,
            event=event,
            payload=payload,
            request_headers=request_headers,
            response_status=response_status,
            response_body=response_body,
            duration_ms=duration_ms,
            attempt_index=attempt_index,
        )

    async def list_by_subscription(
        self, subscription_id: str, limit: int = 50
    ) -> list[DeliveryRecordRow]:
        """List recent delivery records for a subscription, newest first."""
        stmt = (
            select(DeliveryRecordRow)
            .where(DeliveryRecordRow.subscription_id == subscription_id)
            .order_by(DeliveryRecordRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_job(self, job_id: str) -> list[DeliveryRecordRow]:
        """List every record written for a job, in attempt order."""
        stmt = (
            select(DeliveryRecordRow)
            .where(DeliveryRecordRow.job_id == job_id)
            .order_by(DeliveryRecordRow.attempt_index)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
