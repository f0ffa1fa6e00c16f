"""Route a parked record to the handler for its fault kind."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from faultqueue.config import DispatchSettings
from faultqueue.core.types import FaultKind, FaultRecord, ItemKind
from faultqueue.errors import UnknownFaultKindError, UnknownItemKindError
from faultqueue.reconciler.types import ItemOutcome


class RecordHandler(Protocol):
    async def handle(
        self, record: FaultRecord, item_kind: ItemKind, settings: DispatchSettings
    ) -> ItemOutcome:
        ...


HandlerTable = Mapping[FaultKind, RecordHandler]


def parse_item_kind(value: object) -> ItemKind:
    if isinstance(value, ItemKind):
        return value
    try:
        return ItemKind(str(value))
    except ValueError:
        raise UnknownItemKindError(value) from None


def parse_fault_kind(value: object) -> FaultKind:
    if isinstance(value, FaultKind):
        return value
    try:
        return FaultKind(str(value))
    except ValueError:
        raise UnknownFaultKindError(value) from None


def route(
    fault_kind: object, item_kind: object, handlers: HandlerTable
) -> tuple[RecordHandler, ItemKind]:
    """Return the handler and validated item kind for a record.

    Pure lookup. Raises :class:`UnknownFaultKindError` or
    :class:`UnknownItemKindError` for values outside the data model.
    """

    fault = parse_fault_kind(fault_kind)
    kind = parse_item_kind(item_kind)
    try:
        return handlers[fault], kind
    except KeyError:
        raise UnknownFaultKindError(fault) from None


__all__ = ["HandlerTable", "RecordHandler", "parse_fault_kind", "parse_item_kind", "route"]
