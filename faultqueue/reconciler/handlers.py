"""Repair and resubmit handlers for parked records.

Every error raised while handling one record is caught here and turned into
an outcome for that record, so the driver only ever sees outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass

from faultqueue.config import DispatchSettings
from faultqueue.core.types import FaultKind, FaultRecord, ItemKind, MediaRequest
from faultqueue.errors import PayloadDecodeError, UnknownItemKindError
from faultqueue.integrations.contracts import DispatchResult, EnrichmentPort
from faultqueue.logging import get_logger
from faultqueue.reconciler.dispatchers import DispatcherRegistry, apply_approval
from faultqueue.reconciler.types import ItemOutcome
from faultqueue.services.payload_codec import decode_request, encode_request

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class DispatchAttempt:
    success: bool
    request: MediaRequest
    detail: str
    error: str | None = None


async def attempt_dispatch(
    dispatchers: DispatcherRegistry,
    record: FaultRecord,
    item_kind: ItemKind,
    request: MediaRequest,
    settings: DispatchSettings,
) -> DispatchAttempt:
    """Call the dispatcher for ``item_kind`` and fold the answer into a snapshot."""

    try:
        dispatcher = dispatchers.for_kind(item_kind)
        result: DispatchResult = await dispatcher.dispatch(settings, request)
    except UnknownItemKindError as exc:
        logger.error("event=fault_queue.dispatch record_id=%s result=error error=%s", record.id, exc)
        return DispatchAttempt(False, request, "no dispatcher", error=str(exc))
    except Exception as exc:
        logger.warning(
            "event=fault_queue.dispatch record_id=%s kind=%s result=error error=%s",
            record.id,
            item_kind.value,
            exc,
        )
        return DispatchAttempt(False, request, f"dispatch raised: {exc}", error=str(exc))

    if not result.success:
        logger.info(
            "event=fault_queue.dispatch record_id=%s kind=%s backend=%s result=failed detail=%s",
            record.id,
            item_kind.value,
            result.backend or "none",
            result.detail,
        )
        return DispatchAttempt(False, request, result.detail)

    logger.info(
        "event=fault_queue.dispatch record_id=%s kind=%s backend=%s result=ok approved=%s",
        record.id,
        item_kind.value,
        result.backend or "none",
        result.approved,
    )
    return DispatchAttempt(True, apply_approval(request, result), result.detail)


class ResubmitHandler:
    """Re-attempt dispatch for records parked after a transient failure."""

    def __init__(self, dispatchers: DispatcherRegistry) -> None:
        self._dispatchers = dispatchers

    async def handle(
        self, record: FaultRecord, item_kind: ItemKind, settings: DispatchSettings
    ) -> ItemOutcome:
        try:
            request = decode_request(record.payload)
        except PayloadDecodeError as exc:
            logger.error(
                "event=fault_queue.resubmit record_id=%s result=corrupt error=%s", record.id, exc
            )
            return ItemOutcome.skipped(record, "payload could not be decoded", error=str(exc))

        attempt = await attempt_dispatch(self._dispatchers, record, item_kind, request, settings)
        if attempt.success:
            return ItemOutcome.dispatched(record, attempt.request, attempt.detail)
        return ItemOutcome.retained(record, attempt.detail, error=attempt.error)


class RepairHandler:
    """Fill in missing provider ids, then dispatch like :class:`ResubmitHandler`.

    Only TV shows can be repaired; other kinds stay parked untouched.
    """

    repairable_kinds = frozenset({ItemKind.TV_SHOW})

    def __init__(self, enrichment: EnrichmentPort, dispatchers: DispatcherRegistry) -> None:
        self._enrichment = enrichment
        self._dispatchers = dispatchers

    async def handle(
        self, record: FaultRecord, item_kind: ItemKind, settings: DispatchSettings
    ) -> ItemOutcome:
        if item_kind not in self.repairable_kinds:
            logger.info(
                "event=fault_queue.repair record_id=%s kind=%s result=unsupported",
                record.id,
                item_kind.value,
            )
            return ItemOutcome.skipped(record, f"cannot repair {item_kind.value} records")

        try:
            provider_key = int(str(record.primary_identifier or "").strip())
        except ValueError:
            logger.error(
                "event=fault_queue.repair record_id=%s result=invalid_identifier identifier=%r",
                record.id,
                record.primary_identifier,
            )
            return ItemOutcome.skipped(
                record,
                "primary identifier is not a numeric show id",
                error=f"invalid primary identifier {record.primary_identifier!r}",
            )

        try:
            request = decode_request(record.payload)
        except PayloadDecodeError as exc:
            logger.error(
                "event=fault_queue.repair record_id=%s result=corrupt error=%s", record.id, exc
            )
            return ItemOutcome.skipped(record, "payload could not be decoded", error=str(exc))

        try:
            canonical_id = await self._enrichment.lookup(provider_key)
        except Exception as exc:
            logger.warning(
                "event=fault_queue.repair record_id=%s provider_key=%s result=lookup_error error=%s",
                record.id,
                provider_key,
                exc,
            )
            return ItemOutcome.skipped(record, "metadata lookup failed", error=str(exc))

        if canonical_id is None:
            logger.info(
                "event=fault_queue.repair record_id=%s provider_key=%s result=unresolved",
                record.id,
                provider_key,
            )
            return ItemOutcome.skipped(record, "metadata not yet available")

        enriched = request.with_provider_id(canonical_id)
        attempt = await attempt_dispatch(self._dispatchers, record, item_kind, enriched, settings)
        if attempt.success:
            return ItemOutcome.dispatched(record, attempt.request, attempt.detail)
        return ItemOutcome.retained(
            record,
            attempt.detail,
            fault_kind=FaultKind.TRANSIENT_DISPATCH_FAILURE,
            payload=encode_request(enriched),
            error=attempt.error,
        )


__all__ = ["DispatchAttempt", "RepairHandler", "ResubmitHandler", "attempt_dispatch"]
