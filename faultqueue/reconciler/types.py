"""Outcome and summary DTOs produced by a reconciliation pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from faultqueue.core.types import FaultKind, FaultRecord, MediaRequest


class OutcomeAction(str, Enum):
    DELETE = "delete"
    RETAIN = "retain"
    SKIP = "skip"


@dataclass(slots=True, frozen=True)
class ItemOutcome:
    """What the driver must do with one record after its handler ran.

    * ``DELETE``: dispatched; persist ``request`` then remove the record.
    * ``RETAIN``: still failing; bump ``last_retry`` and store the optional
      new ``fault_kind``/``payload``.
    * ``SKIP``: leave the record exactly as it is.
    """

    record_id: int
    action: OutcomeAction
    detail: str = ""
    request: MediaRequest | None = None
    fault_kind: FaultKind | None = None
    payload: bytes | None = None
    error: str | None = None

    @classmethod
    def dispatched(cls, record: FaultRecord, request: MediaRequest, detail: str) -> "ItemOutcome":
        return cls(record_id=record.id, action=OutcomeAction.DELETE, detail=detail, request=request)

    @classmethod
    def retained(
        cls,
        record: FaultRecord,
        detail: str,
        *,
        fault_kind: FaultKind | None = None,
        payload: bytes | None = None,
        error: str | None = None,
    ) -> "ItemOutcome":
        return cls(
            record_id=record.id,
            action=OutcomeAction.RETAIN,
            detail=detail,
            fault_kind=fault_kind,
            payload=payload,
            error=error,
        )

    @classmethod
    def skipped(cls, record: FaultRecord, detail: str, *, error: str | None = None) -> "ItemOutcome":
        return cls(record_id=record.id, action=OutcomeAction.SKIP, detail=detail, error=error)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class PassSummary:
    started_at: datetime
    total: int = 0
    dispatched: int = 0
    retained: int = 0
    skipped: int = 0
    errors: int = 0
    aborted: bool = False
    duration_ms: int = 0
    outcomes: list[ItemOutcome] = field(default_factory=list)

    def add(self, outcome: ItemOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.action is OutcomeAction.DELETE:
            self.dispatched += 1
        elif outcome.action is OutcomeAction.RETAIN:
            self.retained += 1
        else:
            self.skipped += 1
        if outcome.failed:
            self.errors += 1


__all__ = ["ItemOutcome", "OutcomeAction", "PassSummary"]
