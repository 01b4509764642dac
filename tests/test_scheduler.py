"""Tests for the background delivery scheduler loop."""

import asyncio
from types import SimpleNamespace

from hookrelay.config import settings
from hookrelay.workers.delivery_worker import CycleResult
from hookrelay.workers.scheduler import run_scheduler


async def test_scheduler_survives_a_failing_cycle(session_factory, http_client, monkeypatch):
    calls = []
    second_cycle = asyncio.Event()

    async def flaky_cycle(self, now=None):
        calls.append(now)
        if len(calls) == 1:
            raise RuntimeError("database went away")
        second_cycle.set()
        return CycleResult()

    monkeypatch.setattr(settings, "worker_poll_interval_seconds", 0)
    monkeypatch.setattr("hookrelay.workers.scheduler.DeliveryWorker.run_cycle", flaky_cycle)
    app = SimpleNamespace(state=SimpleNamespace(db_session_factory=session_factory, http_client=http_client))

    task = asyncio.create_task(run_scheduler(app))
    await asyncio.wait_for(second_cycle.wait(), timeout=5)
    assert not task.done()

    task.cancel()
    await task
    assert len(calls) >= 2
