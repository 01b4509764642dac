"""Webhook delivery queue repository."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hookrelay.db.base import utcnow
from hookrelay.db.models.webhook import WebhookJobRow
from hookrelay.models.enums import JobStatus
from hookrelay.repositories.base import BaseRepository
from hookrelay.services.id_generator import generate_id


class WebhookJobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, WebhookJobRow)

    async def get(self, job_id: str) -> WebhookJobRow | None:
        return await self.get_by_id("id", job_id)

    async def get_claimed(self, job_id: str, claim_token: str) -> WebhookJobRow | None:
        """Load a job only if it is still held by ``claim_token``."""
        stmt = select(WebhookJobRow).where(
            and_(WebhookJobRow.id == job_id, WebhookJobRow.locked_by == claim_token)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def enqueue(
        self,
        subscription_ids: list[str],
        event: str,
        payload: Any,
        now: datetime | None = None,
    ) -> list[WebhookJobRow]:
        """Insert one pending job per subscription, due immediately."""
        now = now or utcnow()
        rows = [
            WebhookJobRow(
                id=generate_id("whj_"),
                subscription_id=subscription_id,
                event=event,
                payload=payload,
                status=JobStatus.PENDING.value,
                attempt_count=0,
                next_run_at=now,
            )
            for subscription_id in subscription_ids
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def claim_due(
        self,
        claim_token: str,
        limit: int,
        lease: timedelta,
        now: datetime | None = None,
    ) -> list[WebhookJobRow]:
        """Atomically claim up to ``limit`` due jobs for ``claim_token``.

        Candidates are read with ``FOR UPDATE SKIP LOCKED`` where the backend
        supports it, then won with a conditional update that only matches rows
        still pending and due. Pushing ``next_run_at`` out by ``lease`` hides
        claimed rows from other workers; if this worker dies before recording
        an outcome the job becomes due again once the lease runs out.

        The caller must commit for the claim to become visible.
        """
        now = now or utcnow()
        due = and_(
            WebhookJobRow.status == JobStatus.PENDING.value,
            WebhookJobRow.next_run_at <= now,
        )

        candidates = (
            select(WebhookJobRow.id)
            .where(due)
            .order_by(WebhookJobRow.next_run_at)
            .limit(limit)
        )
        if self.session.bind.dialect.name == "postgresql":
            candidates = candidates.with_for_update(skip_locked=True)

        result = await self.session.execute(candidates)
        job_ids = list(result.scalars().all())
        if not job_ids:
            return []

        await self.session.execute(
            update(WebhookJobRow)
            .where(and_(WebhookJobRow.id.in_(job_ids), due))
            .values(locked_by=claim_token, locked_at=now, next_run_at=now + lease)
            .execution_options(synchronize_session=False)
        )

        stmt = select(WebhookJobRow).where(
            and_(WebhookJobRow.id.in_(job_ids), WebhookJobRow.locked_by == claim_token)
        )
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def reschedule(
        self,
        job: WebhookJobRow,
        attempt_count: int,
        next_run_at: datetime,
        last_error: str,
    ) -> WebhookJobRow:
        """Return a job to the pending pool after a retryable failure."""
        return await self.update(
            job,
            status=JobStatus.PENDING.value,
            attempt_count=attempt_count,
            next_run_at=next_run_at,
            last_error=last_error,
            locked_by=None,
            locked_at=None,
        )

    async def mark_failed(self, job: WebhookJobRow, attempt_count: int, last_error: str) -> WebhookJobRow:
        """Retain a job whose retry budget is exhausted, for audit."""
        return await self.update(
            job,
            status=JobStatus.FAILED.value,
            attempt_count=attempt_count,
            last_error=last_error,
            locked_by=None,
            locked_at=None,
        )

    async def list_by_subscription(self, subscription_id: str) -> list[WebhookJobRow]:
        return await self.list_by_field("subscription_id", subscription_id)

    async def delete_for_subscription(self, subscription_id: str) -> int:
        """Drop every queued job of a subscription. Returns the row count."""
        result = await self.session.execute(
            delete(WebhookJobRow).where(WebhookJobRow.subscription_id == subscription_id)
        )
        return result.rowcount or 0
