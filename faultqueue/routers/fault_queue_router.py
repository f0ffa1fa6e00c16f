"""HTTP endpoints for inspecting and purging the fault queue."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from faultqueue.config import get_env
from faultqueue.core.types import FaultKind, ItemKind
from faultqueue.dependencies import get_db, get_fault_queue_service, get_reconcile_scheduler
from faultqueue.errors import ConflictError, PassInProgressError
from faultqueue.reconciler.scheduler import ReconcileScheduler
from faultqueue.reconciler.types import PassSummary
from faultqueue.services.fault_queue_service import FaultQueueService

router = APIRouter(tags=["Fault Queue"])


def _env_int(name: str, default: int, *, minimum: int, maximum: int | None = None) -> int:
    raw = get_env(name)
    try:
        value = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        value = default
    value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


_PAGE_SIZE_DEFAULT = _env_int("FAULT_QUEUE_PAGE_SIZE_DEFAULT", 25, minimum=1, maximum=100)
_PAGE_SIZE_MAX = _env_int("FAULT_QUEUE_PAGE_SIZE_MAX", 100, minimum=1, maximum=500)


def _resolve_actor(request: Request) -> str:
    presented = request.headers.get("X-API-Key") or request.headers.get("Authorization")
    if not presented:
        return "anonymous"
    digest = hashlib.blake2b(presented.encode("utf-8"), digest_size=8).hexdigest()
    return f"api:{digest}"


class FaultQueueItemPayload(BaseModel):
    id: int
    item_kind: str
    fault_kind: str
    primary_identifier: Optional[str] = None
    title: Optional[str] = None
    request_id: Optional[int] = None
    decodable: bool
    last_retry: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FaultQueueListData(BaseModel):
    items: list[FaultQueueItemPayload]
    page: int
    page_size: int
    total: int


class FaultQueueListEnvelope(BaseModel):
    ok: bool
    data: FaultQueueListData
    error: Optional[Dict[str, Any]] = None


class FaultQueueStatsData(BaseModel):
    total: int
    by_fault_kind: Dict[str, int]
    by_item_kind: Dict[str, int]
    stale: int
    stale_after_hours: int
    last_pass_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FaultQueueStatsEnvelope(BaseModel):
    ok: bool
    data: FaultQueueStatsData
    error: Optional[Dict[str, Any]] = None


class FaultQueuePurgeRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)


class FaultQueuePurgeData(BaseModel):
    purged: int


class FaultQueuePurgeEnvelope(BaseModel):
    ok: bool
    data: FaultQueuePurgeData
    error: Optional[Dict[str, Any]] = None


class PassOutcomePayload(BaseModel):
    record_id: int
    action: str
    detail: str
    error: Optional[str] = None


class PassSummaryData(BaseModel):
    started_at: datetime
    total: int
    dispatched: int
    retained: int
    skipped: int
    errors: int
    aborted: bool
    duration_ms: int
    outcomes: list[PassOutcomePayload]

    @classmethod
    def from_summary(cls, summary: PassSummary) -> "PassSummaryData":
        return cls(
            started_at=summary.started_at,
            total=summary.total,
            dispatched=summary.dispatched,
            retained=summary.retained,
            skipped=summary.skipped,
            errors=summary.errors,
            aborted=summary.aborted,
            duration_ms=summary.duration_ms,
            outcomes=[
                PassOutcomePayload(
                    record_id=outcome.record_id,
                    action=outcome.action.value,
                    detail=outcome.detail,
                    error=outcome.error,
                )
                for outcome in summary.outcomes
            ],
        )


class PassSummaryEnvelope(BaseModel):
    ok: bool
    data: PassSummaryData
    error: Optional[Dict[str, Any]] = None


@router.get("", response_model=FaultQueueListEnvelope)
def list_fault_queue(
    page: int = Query(1, ge=1),
    page_size: int = Query(_PAGE_SIZE_DEFAULT, ge=1, le=_PAGE_SIZE_MAX),
    fault_kind: Optional[FaultKind] = Query(None),
    item_kind: Optional[ItemKind] = Query(None),
    session: Session = Depends(get_db),
    service: FaultQueueService = Depends(get_fault_queue_service),
) -> FaultQueueListEnvelope:
    result = service.list_entries(
        session,
        page=page,
        page_size=page_size,
        fault_kind=fault_kind.value if fault_kind else None,
        item_kind=item_kind.value if item_kind else None,
    )
    items = [FaultQueueItemPayload.model_validate(item) for item in result.items]
    data = FaultQueueListData(
        items=items, page=result.page, page_size=result.page_size, total=result.total
    )
    return FaultQueueListEnvelope(ok=True, data=data, error=None)


@router.get("/stats", response_model=FaultQueueStatsEnvelope)
def fault_queue_stats(
    session: Session = Depends(get_db),
    service: FaultQueueService = Depends(get_fault_queue_service),
) -> FaultQueueStatsEnvelope:
    result = service.stats(session)
    return FaultQueueStatsEnvelope(
        ok=True, data=FaultQueueStatsData.model_validate(result), error=None
    )


@router.delete("/{record_id}", response_model=FaultQueuePurgeEnvelope)
def purge_fault_record(
    record_id: int,
    request: Request,
    session: Session = Depends(get_db),
    service: FaultQueueService = Depends(get_fault_queue_service),
) -> FaultQueuePurgeEnvelope:
    service.purge_one(session, record_id, actor=_resolve_actor(request))
    return FaultQueuePurgeEnvelope(ok=True, data=FaultQueuePurgeData(purged=1), error=None)


@router.post("/purge", response_model=FaultQueuePurgeEnvelope)
def purge_fault_queue(
    payload: FaultQueuePurgeRequest,
    request: Request,
    session: Session = Depends(get_db),
    service: FaultQueueService = Depends(get_fault_queue_service),
) -> FaultQueuePurgeEnvelope:
    purged = service.purge(session, ids=payload.ids, actor=_resolve_actor(request))
    return FaultQueuePurgeEnvelope(ok=True, data=FaultQueuePurgeData(purged=purged), error=None)


@router.post("/reconcile", response_model=PassSummaryEnvelope)
async def reconcile_now(
    scheduler: ReconcileScheduler = Depends(get_reconcile_scheduler),
) -> PassSummaryEnvelope:
    try:
        summary = await scheduler.trigger()
    except PassInProgressError as exc:
        raise ConflictError(str(exc)) from exc
    return PassSummaryEnvelope(ok=True, data=PassSummaryData.from_summary(summary), error=None)


__all__ = ["router"]
