from __future__ import annotations

import pytest

from faultqueue.core.types import FaultKind, ItemKind
from faultqueue.errors import UnknownFaultKindError, UnknownItemKindError
from faultqueue.reconciler.router import route


class _Handler:
    def __init__(self, name: str) -> None:
        self.name = name

    async def handle(self, record, item_kind, settings):  # pragma: no cover - never awaited
        raise AssertionError("not called")


HANDLERS = {
    FaultKind.MISSING_INFORMATION: _Handler("repair"),
    FaultKind.TRANSIENT_DISPATCH_FAILURE: _Handler("resubmit"),
}


def test_route_selects_handler_by_fault_kind() -> None:
    handler, kind = route("MissingInformation", "TvShow", HANDLERS)
    assert handler.name == "repair"
    assert kind is ItemKind.TV_SHOW

    handler, kind = route(FaultKind.TRANSIENT_DISPATCH_FAILURE, ItemKind.ALBUM, HANDLERS)
    assert handler.name == "resubmit"
    assert kind is ItemKind.ALBUM


def test_route_rejects_unknown_item_kind() -> None:
    with pytest.raises(UnknownItemKindError):
        route("TransientDispatchFailure", "Podcast", HANDLERS)


def test_route_rejects_unknown_fault_kind() -> None:
    with pytest.raises(UnknownFaultKindError):
        route("Expired", "Movie", HANDLERS)


def test_route_rejects_fault_kind_without_handler() -> None:
    with pytest.raises(UnknownFaultKindError):
        route("MissingInformation", "Movie", {FaultKind.TRANSIENT_DISPATCH_FAILURE: _Handler("x")})
