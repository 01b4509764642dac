"""Webhook delivery worker.

One cycle claims a batch of due jobs, renders each through its
subscription's adapter, performs the HTTP call and records the outcome:

- 2xx: a delivery record is written, the job is deleted and the
  subscription's ``failure_count`` resets to 0.
- anything else: a delivery record is written and the job is rescheduled
  with exponential backoff, or marked ``failed`` once ``max_attempts`` is
  reached (which also bumps ``failure_count``).

Jobs whose subscription is gone or inactive are deleted without an
attempt. Delivery is at-least-once: a worker that dies after sending but
before recording leaves the claim to expire, and the job is sent again.
"""

import asyncio
import logging
import os
import socket
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from hookrelay.config import Settings, settings as default_settings
from hookrelay.db.base import utcnow
from hookrelay.integrations.adapters import DestinationConfig, OutboundJob, adapt
from hookrelay.logging_config import bind_worker_context
from hookrelay.models.enums import DeliveryOutcome
from hookrelay.repositories.delivery_repo import DeliveryRecordRepository
from hookrelay.repositories.subscription_repo import SubscriptionRepository
from hookrelay.repositories.webhook_job_repo import WebhookJobRepository

logger = logging.getLogger(__name__)

RESPONSE_BODY_LIMIT = 2000
BASE_BACKOFF_SECONDS = 30
BACKOFF_FACTOR = 4


def compute_backoff(attempt_count: int) -> timedelta:
    """Delay before the next attempt, after ``attempt_count`` failures.

    30 s, 2 min, 8 min, 32 min for failures 1 through 4.
    """
    return timedelta(seconds=BASE_BACKOFF_SECONDS * BACKOFF_FACTOR ** (attempt_count - 1))


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


@dataclass
class CycleResult:
    """Per-outcome counts for one worker cycle."""

    claimed: int = 0
    outcomes: Counter = field(default_factory=Counter)

    @property
    def delivered(self) -> int:
        return self.outcomes[DeliveryOutcome.DELIVERED]

    @property
    def retried(self) -> int:
        return self.outcomes[DeliveryOutcome.RETRY_SCHEDULED]

    @property
    def failed(self) -> int:
        return self.outcomes[DeliveryOutcome.FAILED]

    @property
    def orphaned(self) -> int:
        return self.outcomes[DeliveryOutcome.ORPHANED]

    def as_dict(self) -> dict[str, int]:
        return {"claimed": self.claimed, **{outcome.value: self.outcomes[outcome] for outcome in DeliveryOutcome}}


@dataclass
class _Attempt:
    request_headers: dict[str, str] | None = None
    response_status: int | None = None
    response_body: str | None = None
    error: str | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.error is None


class DeliveryWorker:
    """Drains the webhook queue. Holds no job state between cycles."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        client: httpx.AsyncClient | None = None,
        *,
        batch_size: int | None = None,
        max_attempts: int | None = None,
        timeout: float | None = None,
        concurrency: int | None = None,
        lease: timedelta | None = None,
        worker_id: str | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or default_settings
        self._session_factory = session_factory
        self._client = client
        self.batch_size = batch_size or self._settings.worker_batch_size
        self.max_attempts = max_attempts or self._settings.webhook_max_attempts
        self.timeout = timeout or self._settings.webhook_timeout_seconds
        self.concurrency = concurrency or self._settings.worker_concurrency
        self.lease = lease or timedelta(seconds=self._settings.webhook_claim_lease_seconds)
        self.worker_id = worker_id or default_worker_id()

    async def run_cycle(self, now: datetime | None = None) -> CycleResult:
        """Claim and process one batch of due jobs.

        With an explicit ``now`` the whole cycle runs on that clock. Otherwise
        retries are scheduled from the moment each attempt failed.
        """
        clock = now
        now = now or utcnow()
        bind_worker_context(self.worker_id)
        claim_token = f"{self.worker_id}:{uuid.uuid4().hex[:12]}"

        async with self._session_factory() as session:
            claimed = await WebhookJobRepository(session).claim_due(
                claim_token, self.batch_size, self.lease, now
            )
            job_ids = [job.id for job in claimed]
            await session.commit()

        result = CycleResult(claimed=len(job_ids))
        if not job_ids:
            return result

        logger.info("Claimed %d webhook job(s)", len(job_ids))

        if self._client is not None:
            outcomes = await self._process_all(self._client, job_ids, claim_token, clock)
        else:
            async with httpx.AsyncClient() as client:
                outcomes = await self._process_all(client, job_ids, claim_token, clock)

        result.outcomes.update(outcomes)
        logger.info("Webhook cycle finished: %s", result.as_dict())
        return result

    async def _process_all(
        self, client: httpx.AsyncClient, job_ids: list[str], claim_token: str, clock: datetime | None
    ) -> list[DeliveryOutcome]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(job_id: str) -> DeliveryOutcome:
            async with semaphore:
                try:
                    return await self._process_job(client, job_id, claim_token, clock)
                except Exception:
                    # The claim lease expires and the job is picked up again.
                    logger.exception("Error processing webhook job %s", job_id)
                    return DeliveryOutcome.SKIPPED

        return await asyncio.gather(*(guarded(job_id) for job_id in job_ids))

    async def _process_job(
        self, client: httpx.AsyncClient, job_id: str, claim_token: str, clock: datetime | None
    ) -> DeliveryOutcome:
        async with self._session_factory() as session:
            jobs = WebhookJobRepository(session)
            subscriptions = SubscriptionRepository(session)

            job = await jobs.get_claimed(job_id, claim_token)
            if job is None:
                logger.debug("Lost claim on webhook job %s", job_id)
                return DeliveryOutcome.SKIPPED

            subscription = await subscriptions.get(job.subscription_id)
            if subscription is None or not subscription.is_active:
                await jobs.delete(job)
                await session.commit()
                logger.info("Dropped webhook job %s: subscription missing or inactive", job_id)
                return DeliveryOutcome.ORPHANED

            attempt_index = job.attempt_count
            attempt = await self._attempt(
                client,
                OutboundJob(
                    id=job.id,
                    event=job.event,
                    payload=job.payload,
                    workspace_id=subscription.workspace_id,
                ),
                DestinationConfig.from_subscription(subscription, self._settings),
            )

            await DeliveryRecordRepository(session).record(
                subscription_id=subscription.id,
                job_id=job.id,
                event=job.event,
                payload=job.payload,
                request_headers=attempt.request_headers,
                response_status=attempt.response_status,
                response_body=attempt.response_body if attempt.response_body is not None else attempt.error,
                duration_ms=attempt.duration_ms,
                attempt_index=attempt_index,
            )

            if attempt.succeeded:
                await jobs.delete(job)
                await subscriptions.reset_failure_count(subscription.id)
                await session.commit()
                logger.info(
                    "Delivered webhook job %s (%s) to subscription %s in %dms",
                    job_id, job.event, subscription.id, attempt.duration_ms,
                )
                return DeliveryOutcome.DELIVERED

            attempt_count = attempt_index + 1
            if attempt_count >= self.max_attempts:
                await jobs.mark_failed(job, attempt_count, attempt.error)
                await subscriptions.increment_failure_count(subscription.id)
                await session.commit()
                logger.warning(
                    "Webhook job %s failed permanently after %d attempts: %s",
                    job_id, attempt_count, attempt.error,
                )
                return DeliveryOutcome.FAILED

            next_run_at = (clock or utcnow()) + compute_backoff(attempt_count)
            await jobs.reschedule(job, attempt_count, next_run_at, attempt.error)
            await session.commit()
            logger.info(
                "Webhook job %s attempt %d failed (%s), retrying at %s",
                job_id, attempt_count, attempt.error, next_run_at.isoformat(),
            )
            return DeliveryOutcome.RETRY_SCHEDULED

    async def _attempt(
        self, client: httpx.AsyncClient, job: OutboundJob, config: DestinationConfig
    ) -> _Attempt:
        attempt = _Attempt()
        started = time.monotonic()
        try:
            request = adapt(job, config)
            attempt.request_headers = dict(request.headers)
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body.encode("utf-8"),
                timeout=self.timeout,
            )
            attempt.response_status = response.status_code
            attempt.response_body = response.text[:RESPONSE_BODY_LIMIT]
            if not response.is_success:
                attempt.error = f"Endpoint returned status {response.status_code}"
        except httpx.TimeoutException:
            attempt.error = f"Request timed out after {self.timeout:g}s"
        except httpx.HTTPError as exc:
            attempt.error = f"{type(exc).__name__}: {exc}"
        except Exception as exc:
            logger.exception("Adapter %s failed for webhook job %s", config.adapter_type, job.id)
            attempt.error = f"{type(exc).__name__}: {exc}"
        finally:
            attempt.duration_ms = int((time.monotonic() - started) * 1000)
        return attempt
