"""Operator queries over the fault queue: listing, statistics and purging."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from sqlalchemy import Select, delete, func, select
from sqlalchemy.orm import Session

from faultqueue.core.types import FaultKind, ItemKind
from faultqueue.errors import NotFoundError, PayloadDecodeError, ValidationAppError
from faultqueue.logging import get_logger
from faultqueue.logging_events import log_event
from faultqueue.models import RequestQueue, ScheduledJob
from faultqueue.services.payload_codec import decode_request
from faultqueue.utils.time import utcnow_naive

logger = get_logger(__name__)


@dataclass(slots=True)
class FaultQueueEntry:
    id: int
    item_kind: str
    fault_kind: str
    primary_identifier: str | None
    title: str | None
    request_id: int | None
    decodable: bool
    last_retry: datetime | None
    created_at: datetime


@dataclass(slots=True)
class FaultQueueListResult:
    items: list[FaultQueueEntry]
    page: int
    page_size: int
    total: int


@dataclass(slots=True)
class FaultQueueStats:
    total: int
    by_fault_kind: dict[str, int]
    by_item_kind: dict[str, int]
    stale: int
    stale_after_hours: int
    last_pass_at: datetime | None


class FaultQueueService:
    """Read and purge access to ``request_queue`` for the operator API."""

    def __init__(
        self,
        *,
        job_name: str,
        stale_after_hours: int,
        purge_limit: int = 1000,
    ) -> None:
        if stale_after_hours <= 0:
            raise ValueError("stale_after_hours must be positive")
        if purge_limit <= 0:
            raise ValueError("purge_limit must be positive")
        self._job_name = job_name
        self._stale_after_hours = stale_after_hours
        self._purge_limit = purge_limit

    def list_entries(
        self,
        session: Session,
        *,
        page: int,
        page_size: int,
        fault_kind: str | None = None,
        item_kind: str | None = None,
    ) -> FaultQueueListResult:
        if page <= 0:
            raise ValidationAppError("page must be >= 1")
        if page_size <= 0:
            raise ValidationAppError("page_size must be >= 1")

        start = time.perf_counter()
        query: Select[tuple[RequestQueue]] = select(RequestQueue)
        if fault_kind:
            query = query.where(RequestQueue.fault_type == _known_fault_kind(fault_kind))
        if item_kind:
            query = query.where(RequestQueue.type == _known_item_kind(item_kind))

        total = session.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        offset = (page - 1) * page_size
        rows = (
            session.execute(
                query.order_by(RequestQueue.id.asc()).offset(offset).limit(page_size)
            )
            .scalars()
            .all()
        )
        items = [self._to_entry(row) for row in rows]

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "event=fault_queue.list page=%d page_size=%d fault_kind=%s item_kind=%s "
            "duration_ms=%.2f",
            page,
            page_size,
            fault_kind or "",
            item_kind or "",
            duration_ms,
        )
        return FaultQueueListResult(items=items, page=page, page_size=page_size, total=int(total))

    def stats(self, session: Session) -> FaultQueueStats:
        total = session.execute(select(func.count(RequestQueue.id))).scalar_one()

        by_fault_kind: dict[str, int] = {}
        for fault_type, count in session.execute(
            select(RequestQueue.fault_type, func.count(RequestQueue.id)).group_by(
                RequestQueue.fault_type
            )
        ).all():
            by_fault_kind[str(fault_type)] = int(count or 0)

        by_item_kind: dict[str, int] = {}
        for item_type, count in session.execute(
            select(RequestQueue.type, func.count(RequestQueue.id)).group_by(RequestQueue.type)
        ).all():
            by_item_kind[str(item_type)] = int(count or 0)

        cutoff = utcnow_naive() - timedelta(hours=self._stale_after_hours)
        stale = session.execute(
            select(func.count(RequestQueue.id)).where(RequestQueue.created_at <= cutoff)
        ).scalar_one()

        last_pass_at = session.execute(
            select(ScheduledJob.last_run).where(ScheduledJob.name == self._job_name)
        ).scalar_one_or_none()

        logger.info(
            "event=fault_queue.stats total=%d stale=%d fault_kinds=%d",
            int(total),
            int(stale),
            len(by_fault_kind),
        )
        return FaultQueueStats(
            total=int(total),
            by_fault_kind=by_fault_kind,
            by_item_kind=by_item_kind,
            stale=int(stale),
            stale_after_hours=self._stale_after_hours,
            last_pass_at=last_pass_at,
        )

    def purge(self, session: Session, *, ids: Sequence[int], actor: str | None = None) -> int:
        """Remove the given records. Unknown ids are ignored."""

        if not ids:
            raise ValidationAppError(f"ids required (1..{self._purge_limit})")
        unique_ids = list(dict.fromkeys(int(identifier) for identifier in ids))
        if len(unique_ids) > self._purge_limit:
            raise ValidationAppError(f"ids exceed limit of {self._purge_limit}")

        result = session.execute(delete(RequestQueue).where(RequestQueue.id.in_(unique_ids)))
        session.commit()
        purged = int(result.rowcount or 0)
        log_event(
            logger,
            "fault_queue.purge",
            component="service.fault_queue",
            actor=actor or "unknown",
            requested=len(unique_ids),
            purged=purged,
        )
        return purged

    def purge_one(self, session: Session, record_id: int, *, actor: str | None = None) -> None:
        row = session.get(RequestQueue, record_id)
        if row is None:
            raise NotFoundError(f"Fault queue record {record_id} not found")
        session.delete(row)
        session.commit()
        log_event(
            logger,
            "fault_queue.purge",
            component="service.fault_queue",
            actor=actor or "unknown",
            requested=1,
            purged=1,
        )

    @staticmethod
    def _to_entry(row: RequestQueue) -> FaultQueueEntry:
        title: str | None = None
        request_id: int | None = None
        decodable = True
        try:
            request = decode_request(bytes(row.content or b""))
        except PayloadDecodeError:
            decodable = False
        else:
            title = request.title or None
            request_id = request.request_id
        return FaultQueueEntry(
            id=int(row.id),
            item_kind=str(row.type),
            fault_kind=str(row.fault_type),
            primary_identifier=row.primary_identifier,
            title=title,
            request_id=request_id,
            decodable=decodable,
            last_retry=row.last_retry,
            created_at=row.created_at,
        )


def _known_fault_kind(value: str) -> str:
    try:
        return FaultKind(value).value
    except ValueError:
        raise ValidationAppError(
            "fault_kind is not recognised",
            meta={"allowed": [kind.value for kind in FaultKind]},
        ) from None


def _known_item_kind(value: str) -> str:
    try:
        return ItemKind(value).value
    except ValueError:
        raise ValidationAppError(
            "item_kind is not recognised",
            meta={"allowed": [kind.value for kind in ItemKind]},
        ) from None


__all__ = [
    "FaultQueueEntry",
    "FaultQueueListResult",
    "FaultQueueService",
    "FaultQueueStats",
]
