"""Periodic trigger for reconciliation passes."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Protocol

from faultqueue.errors import PassInProgressError
from faultqueue.logging import get_logger
from faultqueue.logging_events import log_event
from faultqueue.reconciler.types import PassSummary

logger = get_logger(__name__)

_LOG_COMPONENT = "reconciler.scheduler"


class PassRunner(Protocol):
    async def run_pass(self) -> PassSummary:
        """Run one reconciliation pass."""


class ReconcileScheduler:
    """Run the driver on a fixed interval, never two passes at once."""

    def __init__(
        self,
        driver: PassRunner,
        *,
        interval_s: float,
        run_on_start: bool = False,
        enabled: bool = True,
        shutdown_grace_s: float = 5.0,
    ) -> None:
        self._driver = driver
        self._interval = max(0.0, float(interval_s))
        self._run_on_start = run_on_start
        self._enabled = enabled
        self._shutdown_grace = max(0.0, float(shutdown_grace_s))
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._last_summary: PassSummary | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def started(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_summary(self) -> PassSummary | None:
        return self._last_summary

    def start(self) -> bool:
        """Start the background loop. Returns ``False`` when nothing was started."""

        if not self._enabled:
            log_event(logger, "fault_queue.scheduler", component=_LOG_COMPONENT, status="disabled")
            return False
        if self.started:
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="fault-queue-scheduler")
        log_event(
            logger,
            "fault_queue.scheduler",
            component=_LOG_COMPONENT,
            status="started",
            interval_s=self._interval,
            run_on_start=self._run_on_start,
        )
        return True

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current pass to finish."""

        self._stop_event.set()
        task = self._task
        if task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._shutdown_grace)
        except TimeoutError:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        finally:
            self._task = None

    async def trigger(self) -> PassSummary:
        """Run one pass now.

        Raises :class:`PassInProgressError` if a pass is already running.
        """

        if self._lock.locked():
            raise PassInProgressError("a reconciliation pass is already running")
        async with self._lock:
            summary = await self._driver.run_pass()
        self._last_summary = summary
        return summary

    async def _tick(self) -> None:
        try:
            await self.trigger()
        except PassInProgressError:
            log_event(
                logger,
                "fault_queue.scheduler",
                component=_LOG_COMPONENT,
                status="skipped",
                reason="busy",
            )
        except Exception:
            logger.exception("event=fault_queue.scheduler result=error")

    async def _run(self) -> None:
        if self._run_on_start:
            await self._tick()
        while not self._stop_event.is_set():
            await self._sleep_until_next()
            if self._stop_event.is_set():
                break
            await self._tick()

    async def _sleep_until_next(self) -> None:
        if self._interval <= 0:
            await asyncio.sleep(0)
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)


__all__ = ["PassRunner", "ReconcileScheduler"]
