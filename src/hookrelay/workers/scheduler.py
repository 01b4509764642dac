"""Background scheduler that runs webhook delivery cycles on an interval."""

import asyncio
import logging

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from hookrelay.config import settings
from hookrelay.workers.delivery_worker import CycleResult, DeliveryWorker

logger = logging.getLogger(__name__)


async def process_queue_once(
    session_factory: async_sessionmaker,
    client: httpx.AsyncClient | None = None,
) -> CycleResult:
    """Run a single delivery cycle. Used by the HTTP trigger and the CLI."""
    return await DeliveryWorker(session_factory, client).run_cycle()


async def run_scheduler(app) -> None:
    """Background task that drains the webhook queue every poll interval."""
    interval = settings.worker_poll_interval_seconds
    logger.info("Webhook scheduler started (poll_interval=%ds)", interval)

    worker = None
    while True:
        try:
            session_factory = getattr(app.state, "db_session_factory", None)
            if session_factory is None:
                await asyncio.sleep(interval)
                continue

            if worker is None:
                worker = DeliveryWorker(session_factory, getattr(app.state, "http_client", None))

            result = await worker.run_cycle()
            if result.claimed:
                logger.info("Scheduler processed %d webhook job(s)", result.claimed)

            await asyncio.sleep(interval)

        except asyncio.CancelledError:
            logger.info("Webhook scheduler stopped")
            break
        except Exception as exc:
            logger.exception("Scheduler error: %s", exc)
            # Continue running despite errors
            await asyncio.sleep(interval)
