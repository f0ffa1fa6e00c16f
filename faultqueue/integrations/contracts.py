"""Port contracts between the reconciler and the outside world."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from faultqueue.config import DispatchSettings
from faultqueue.core.types import MediaRequest


@dataclass(slots=True, frozen=True)
class DispatchResult:
    """Answer of a dispatch attempt.

    ``backend`` names the service that handled the call, or ``None`` when no
    backend for the item kind is enabled. ``approved`` is the approval state
    the item kind's policy assigns after this attempt.
    """

    success: bool
    detail: str
    backend: str | None = None
    approved: bool = False

    @classmethod
    def disabled(cls, detail: str) -> "DispatchResult":
        return cls(success=False, detail=detail)


class DispatchPort(Protocol):
    """Submit a request to the acquisition backend for its item kind.

    Ordinary negative answers come back as ``success=False``. Transport
    failures raise :class:`~faultqueue.integrations.errors.DownstreamError`.
    """

    async def dispatch(self, settings: DispatchSettings, request: MediaRequest) -> DispatchResult:
        ...


class EnrichmentPort(Protocol):
    """Resolve a partial identifier into the canonical provider id."""

    async def lookup(self, provider_key: int) -> int | None:
        ...


__all__ = ["DispatchPort", "DispatchResult", "EnrichmentPort"]
