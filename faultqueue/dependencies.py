"""FastAPI dependency providers."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from faultqueue.config import FAULT_QUEUE_JOB_NAME, load_config
from faultqueue.db import get_session
from faultqueue.errors import InternalServerError
from faultqueue.reconciler.scheduler import ReconcileScheduler
from faultqueue.services.fault_queue_service import FaultQueueService


def get_db() -> Generator[Session, None, None]:
    session = get_session()
    try:
        yield session
    finally:
        session.close()


def get_fault_queue_service() -> FaultQueueService:
    config = load_config()
    return FaultQueueService(
        job_name=FAULT_QUEUE_JOB_NAME,
        stale_after_hours=config.reconciler.stale_after_hours,
    )


def get_reconcile_scheduler(request: Request) -> ReconcileScheduler:
    scheduler = getattr(request.app.state, "reconcile_scheduler", None)
    if scheduler is None:
        raise InternalServerError("Reconciler unavailable")
    return scheduler


__all__ = ["get_db", "get_fault_queue_service", "get_reconcile_scheduler"]
