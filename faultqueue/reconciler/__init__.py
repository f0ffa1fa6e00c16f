"""Fault queue reconciliation: driver, handlers and the periodic scheduler."""

from __future__ import annotations

from collections.abc import Callable

import httpx

from faultqueue.config import AppConfig, DispatchSettings, load_config
from faultqueue.core.types import FaultKind
from faultqueue.integrations.tvmaze import TvMazeClient
from faultqueue.reconciler.dispatchers import DispatcherRegistry
from faultqueue.reconciler.driver import ReconciliationDriver
from faultqueue.reconciler.handlers import RepairHandler, ResubmitHandler
from faultqueue.reconciler.scheduler import ReconcileScheduler
from faultqueue.services.fault_store import SqlFaultRecordStore
from faultqueue.services.job_record import SqlJobRecorder
from faultqueue.services.request_service import SqlRequestRepository


def _fresh_dispatch_settings() -> DispatchSettings:
    return load_config().dispatch_settings()


def build_driver(
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    settings_provider: Callable[[], DispatchSettings] | None = None,
) -> ReconciliationDriver:
    """Wire a driver against the SQL stores and the configured HTTP backends.

    Dispatch settings are re-read from the environment at the start of each
    pass unless ``settings_provider`` is given.
    """

    dispatchers = DispatcherRegistry.default(config.external, transport=transport)
    enrichment = TvMazeClient(config.tvmaze, config.external, transport=transport)
    return ReconciliationDriver(
        store=SqlFaultRecordStore(),
        requests=SqlRequestRepository(),
        job_recorder=SqlJobRecorder(),
        handlers={
            FaultKind.MISSING_INFORMATION: RepairHandler(enrichment, dispatchers),
            FaultKind.TRANSIENT_DISPATCH_FAILURE: ResubmitHandler(dispatchers),
        },
        settings_provider=settings_provider or _fresh_dispatch_settings,
    )


def build_scheduler(
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ReconcileScheduler:
    return ReconcileScheduler(
        build_driver(config, transport=transport),
        interval_s=config.reconciler.interval_s,
        run_on_start=config.reconciler.run_on_start,
        enabled=config.reconciler.enabled,
    )


__all__ = ["ReconcileScheduler", "ReconciliationDriver", "build_driver", "build_scheduler"]
