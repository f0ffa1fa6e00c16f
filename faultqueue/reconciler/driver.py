"""Reconciliation driver: one full sweep over the fault queue."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from faultqueue.config import FAULT_QUEUE_JOB_NAME, DispatchSettings
from faultqueue.core.types import FaultKind, FaultRecord
from faultqueue.errors import ReconcilerError
from faultqueue.logging import get_logger
from faultqueue.logging_events import log_item_outcome, log_pass_summary
from faultqueue.reconciler.router import HandlerTable, route
from faultqueue.reconciler.types import ItemOutcome, OutcomeAction, PassSummary
from faultqueue.services.fault_store import FaultRecordStore
from faultqueue.services.request_service import RequestRepository
from faultqueue.utils.time import monotonic_ms, utcnow_naive

logger = get_logger(__name__)

SettingsProvider = Callable[[], DispatchSettings]


class JobRecorder(Protocol):
    def record(self, name: str) -> None:
        """Mark the named job as completed now."""


def partition(
    records: Sequence[FaultRecord],
) -> tuple[list[FaultRecord], list[FaultRecord], list[FaultRecord]]:
    """Split records into missing-information, transient and unclassifiable lists."""

    missing: list[FaultRecord] = []
    transient: list[FaultRecord] = []
    other: list[FaultRecord] = []
    for record in records:
        if record.fault_kind == FaultKind.MISSING_INFORMATION.value:
            missing.append(record)
        elif record.fault_kind == FaultKind.TRANSIENT_DISPATCH_FAILURE.value:
            transient.append(record)
        else:
            other.append(record)
    return missing, transient, other


def apply_outcome(
    record: FaultRecord,
    outcome: ItemOutcome,
    *,
    store: FaultRecordStore,
    requests: RequestRepository,
    now: datetime,
) -> None:
    """Persist one outcome.

    On success the request entity is written before the record is deleted, so
    a crash between the two steps leaves a record that is simply retried.
    """

    if outcome.action is OutcomeAction.DELETE:
        if outcome.request is not None:
            requests.update_request(outcome.request)
        store.delete(record)
        return
    if outcome.action is OutcomeAction.RETAIN:
        store.update(
            replace(
                record,
                last_retry=now,
                fault_kind=(
                    outcome.fault_kind.value
                    if outcome.fault_kind is not None
                    else record.fault_kind
                ),
                payload=outcome.payload if outcome.payload is not None else record.payload,
            )
        )


class ReconciliationDriver:
    """Run reconciliation passes over the fault queue.

    Missing-information records are handled before transient ones. A record
    whose outcome cannot be persisted is counted as an error and the sweep
    moves on. Store calls run in worker threads. Whatever happens during the
    sweep, the completion marker is recorded once.
    """

    def __init__(
        self,
        *,
        store: FaultRecordStore,
        requests: RequestRepository,
        job_recorder: JobRecorder,
        handlers: HandlerTable,
        settings_provider: SettingsProvider,
        now_factory: Callable[[], datetime] = utcnow_naive,
        job_name: str = FAULT_QUEUE_JOB_NAME,
    ) -> None:
        self._store = store
        self._requests = requests
        self._job_recorder = job_recorder
        self._handlers = handlers
        self._settings_provider = settings_provider
        self._now_factory = now_factory
        self._job_name = job_name

    async def run_pass(self) -> PassSummary:
        started = monotonic_ms()
        now = self._now_factory()
        summary = PassSummary(started_at=now)
        try:
            records = await asyncio.to_thread(self._store.list_all)
            summary.total = len(records)
            if records:
                settings = self._settings_provider()
                missing, transient, other = partition(records)
                for batch in (missing, transient, other):
                    for record in batch:
                        outcome = await self._process(record, settings)
                        outcome = await self._persist(record, outcome, now)
                        summary.add(outcome)
                        log_item_outcome(
                            logger,
                            outcome,
                            item_kind=record.item_kind,
                            fault_kind=record.fault_kind,
                        )
        except Exception:
            summary.aborted = True
            logger.exception("event=fault_queue.pass result=aborted")
        finally:
            try:
                await asyncio.to_thread(self._job_recorder.record, self._job_name)
            except Exception:
                logger.exception("event=fault_queue.pass result=record_failed job=%s", self._job_name)
            summary.duration_ms = monotonic_ms() - started
            log_pass_summary(logger, summary)
        return summary

    async def _persist(self, record: FaultRecord, outcome: ItemOutcome, now: datetime) -> ItemOutcome:
        try:
            await asyncio.to_thread(
                apply_outcome,
                record,
                outcome,
                store=self._store,
                requests=self._requests,
                now=now,
            )
        except Exception as exc:
            logger.exception("event=fault_queue.item record_id=%s result=apply_failed", record.id)
            return ItemOutcome.skipped(record, "outcome could not be persisted", error=str(exc))
        return outcome

    async def _process(self, record: FaultRecord, settings: DispatchSettings) -> ItemOutcome:
        try:
            handler, item_kind = route(record.fault_kind, record.item_kind, self._handlers)
        except ReconcilerError as exc:
            logger.error(
                "event=fault_queue.item record_id=%s result=invalid error=%s", record.id, exc
            )
            return ItemOutcome.skipped(record, "record is outside the data model", error=str(exc))

        try:
            return await handler.handle(record, item_kind, settings)
        except Exception as exc:
            logger.exception("event=fault_queue.item record_id=%s result=error", record.id)
            return ItemOutcome.skipped(record, "handler failed", error=str(exc))


__all__ = ["JobRecorder", "ReconciliationDriver", "apply_outcome", "partition"]
