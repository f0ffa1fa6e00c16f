"""SQLAlchemy backed store for parked fault queue records."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from faultqueue.core.types import FaultKind, FaultRecord, ItemKind
from faultqueue.db import session_scope
from faultqueue.logging import get_logger
from faultqueue.models import RequestQueue
from faultqueue.utils.time import utcnow_naive

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


class FaultRecordStore(Protocol):
    """Operations the reconciliation driver needs from the queue."""

    def list_all(self) -> Sequence[FaultRecord]:
        """Return every parked record."""

    def update(self, record: FaultRecord) -> None:
        """Persist the mutable fields of ``record`` by identity."""

    def delete(self, record: FaultRecord) -> None:
        """Remove ``record`` by identity."""


def _to_record(row: RequestQueue) -> FaultRecord:
    return FaultRecord(
        id=int(row.id),
        item_kind=str(row.type),
        fault_kind=str(row.fault_type),
        payload=bytes(row.content or b""),
        primary_identifier=row.primary_identifier,
        last_retry=row.last_retry,
        created_at=row.created_at,
    )


class SqlFaultRecordStore:
    """Fault queue store persisted in the ``request_queue`` table.

    Each call runs in its own transaction so an update or delete for one
    record commits independently of the others in the same pass.
    """

    def __init__(self, *, session_factory: SessionFactory = session_scope) -> None:
        self._session_factory = session_factory

    def list_all(self) -> list[FaultRecord]:
        with self._session_factory() as session:
            rows = session.execute(select(RequestQueue).order_by(RequestQueue.id.asc())).scalars()
            return [_to_record(row) for row in rows]

    def get(self, record_id: int) -> FaultRecord | None:
        with self._session_factory() as session:
            row = session.get(RequestQueue, record_id)
            return _to_record(row) if row is not None else None

    def update(self, record: FaultRecord) -> None:
        with self._session_factory() as session:
            row = session.get(RequestQueue, record.id)
            if row is None:
                logger.warning("event=fault_queue.update record_id=%s result=missing", record.id)
                return
            row.fault_type = str(record.fault_kind)
            row.content = bytes(record.payload)
            row.primary_identifier = record.primary_identifier
            row.last_retry = record.last_retry
            session.add(row)

    def delete(self, record: FaultRecord) -> None:
        with self._session_factory() as session:
            session.execute(delete(RequestQueue).where(RequestQueue.id == record.id))

    def enqueue(
        self,
        *,
        item_kind: ItemKind | str,
        fault_kind: FaultKind | str,
        payload: bytes,
        primary_identifier: str | None = None,
        created_at: datetime | None = None,
    ) -> FaultRecord:
        """Park a new record. Used by tests and tooling, not by the reconciler."""

        kind_value = item_kind.value if isinstance(item_kind, ItemKind) else str(item_kind)
        fault_value = fault_kind.value if isinstance(fault_kind, FaultKind) else str(fault_kind)
        with self._session_factory() as session:
            row = RequestQueue(
                type=kind_value,
                fault_type=fault_value,
                primary_identifier=primary_identifier,
                content=bytes(payload),
                created_at=created_at or utcnow_naive(),
            )
            session.add(row)
            session.flush()
            return _to_record(row)

    def purge(self, record_ids: Iterable[int]) -> int:
        """Manually remove records regardless of their state."""

        ids = list(dict.fromkeys(int(record_id) for record_id in record_ids))
        if not ids:
            return 0
        with self._session_factory() as session:
            result = session.execute(delete(RequestQueue).where(RequestQueue.id.in_(ids)))
            return int(result.rowcount or 0)


__all__ = ["FaultRecordStore", "SqlFaultRecordStore"]
