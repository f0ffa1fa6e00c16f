from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from faultqueue.errors import PassInProgressError
from faultqueue.reconciler.scheduler import ReconcileScheduler
from faultqueue.reconciler.types import PassSummary


class StubDriver:
    def __init__(self, *, gate: asyncio.Event | None = None) -> None:
        self.passes = 0
        self.gate = gate
        self.started = asyncio.Event()

    async def run_pass(self) -> PassSummary:
        self.passes += 1
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        return PassSummary(started_at=datetime(2024, 5, 1), total=self.passes)


@pytest.mark.asyncio
async def test_trigger_runs_one_pass_and_keeps_summary() -> None:
    driver = StubDriver()
    scheduler = ReconcileScheduler(driver, interval_s=3600)

    summary = await scheduler.trigger()

    assert driver.passes == 1
    assert scheduler.last_summary is summary
    assert scheduler.is_running is False


@pytest.mark.asyncio
async def test_trigger_rejects_overlapping_pass() -> None:
    gate = asyncio.Event()
    driver = StubDriver(gate=gate)
    scheduler = ReconcileScheduler(driver, interval_s=3600)

    first = asyncio.create_task(scheduler.trigger())
    await driver.started.wait()
    assert scheduler.is_running is True

    with pytest.raises(PassInProgressError):
        await scheduler.trigger()

    gate.set()
    await first
    assert driver.passes == 1


@pytest.mark.asyncio
async def test_start_with_run_on_start_executes_immediately() -> None:
    driver = StubDriver()
    scheduler = ReconcileScheduler(driver, interval_s=3600, run_on_start=True)

    assert scheduler.start() is True
    assert scheduler.start() is False
    await asyncio.wait_for(driver.started.wait(), timeout=1)
    await scheduler.stop()

    assert driver.passes == 1
    assert scheduler.started is False


@pytest.mark.asyncio
async def test_loop_waits_for_interval_before_first_pass() -> None:
    driver = StubDriver()
    scheduler = ReconcileScheduler(driver, interval_s=3600)

    scheduler.start()
    await asyncio.sleep(0.01)
    await scheduler.stop()

    assert driver.passes == 0


@pytest.mark.asyncio
async def test_loop_repeats_on_short_interval() -> None:
    driver = StubDriver()
    scheduler = ReconcileScheduler(driver, interval_s=0.01)

    scheduler.start()
    await asyncio.sleep(0.1)
    await scheduler.stop()

    assert driver.passes >= 2


@pytest.mark.asyncio
async def test_disabled_scheduler_does_not_start_but_allows_manual_pass() -> None:
    driver = StubDriver()
    scheduler = ReconcileScheduler(driver, interval_s=1, enabled=False)

    assert scheduler.start() is False
    await scheduler.trigger()

    assert driver.passes == 1
