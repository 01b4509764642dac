"""Fan a domain event out to the delivery queue.

Producers call :func:`trigger` (awaited, inside their own session) or
:func:`dispatch_event` (fire-and-forget). Neither raises: a failure to
enqueue is logged and the producing operation carries on.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookrelay.repositories.subscription_repo import SubscriptionRepository
from hookrelay.repositories.webhook_job_repo import WebhookJobRepository

logger = logging.getLogger(__name__)

# Strong references so detached tasks are not garbage collected mid-flight.
_background_tasks: set[asyncio.Task] = set()


async def trigger(session: AsyncSession, event: str, payload: Any, workspace_id: str) -> int:
    """Enqueue one job per active subscription of ``workspace_id`` that wants ``event``.

    All jobs for the event are inserted in one transaction. Returns the
    number of jobs enqueued, 0 when nothing matched or enqueueing failed.
    """
    try:
        subscriptions = await SubscriptionRepository(session).list_matching(workspace_id, event)
        if not subscriptions:
            return 0

        jobs = await WebhookJobRepository(session).enqueue(
            [subscription.id for subscription in subscriptions], event, payload
        )
        await session.commit()
    except Exception:
        logger.exception("Failed to trigger webhook event %s for workspace %s", event, workspace_id)
        try:
            await session.rollback()
        except Exception:
            logger.exception("Rollback after failed trigger of %s also failed", event)
        return 0

    logger.info(
        "Enqueued %d webhook job(s) for %s (workspace=%s)", len(jobs), event, workspace_id
    )
    return len(jobs)


async def _trigger_in_new_session(
    session_factory: async_sessionmaker, event: str, payload: Any, workspace_id: str
) -> int:
    async with session_factory() as session:
        return await trigger(session, event, payload, workspace_id)


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Webhook dispatch task failed: %s", exc, exc_info=exc)


def dispatch_event(
    session_factory: async_sessionmaker, event: str, payload: Any, workspace_id: str
) -> asyncio.Task:
    """Schedule :func:`trigger` on its own session without awaiting it.

    Must be called from a running event loop. The returned task may be
    awaited by callers that want the enqueue count.
    """
    task = asyncio.create_task(_trigger_in_new_session(session_factory, event, payload, workspace_id))
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain_dispatches() -> None:
    """Wait for in-flight :func:`dispatch_event` tasks. Used at shutdown and in tests."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
