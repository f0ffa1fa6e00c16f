"""One dispatcher per item kind, selected through :class:`DispatcherRegistry`."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

import httpx

from faultqueue.config import DispatchSettings, ExternalCallConfig
from faultqueue.core.types import ItemKind, MediaRequest
from faultqueue.errors import UnknownItemKindError
from faultqueue.integrations import couchpotato, headphones, sickrage, sonarr
from faultqueue.integrations.contracts import DispatchPort, DispatchResult
from faultqueue.integrations.couchpotato import CouchPotatoClient
from faultqueue.integrations.headphones import HeadphonesClient
from faultqueue.integrations.sickrage import SickRageClient
from faultqueue.integrations.sonarr import SonarrClient
from faultqueue.logging import get_logger
from faultqueue.reconciler.approval import TvApprovalPolicy, should_auto_approve

logger = get_logger(__name__)


class TvDispatcher:
    """Send TV shows to Sonarr, or to SickRage when Sonarr is disabled.

    Backends are tried in priority order and the first enabled one decides
    the outcome; a failure there does not fall through to the next backend.
    """

    def __init__(
        self,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._external = external
        self._transport = transport

    async def dispatch(self, settings: DispatchSettings, request: MediaRequest) -> DispatchResult:
        policy = TvApprovalPolicy.from_config(settings.approval)
        if settings.sonarr.enabled:
            client = SonarrClient(settings.sonarr, self._external, transport=self._transport)
            result = await client.add_series(request)
            return DispatchResult(
                success=result.added,
                detail=result.describe(),
                backend=sonarr.SERVICE_NAME,
                approved=result.added and policy.approves(sonarr.SERVICE_NAME),
            )
        if settings.sickrage.enabled:
            client = SickRageClient(settings.sickrage, self._external, transport=self._transport)
            result = await client.add_show(request)
            detail = result.message or f"sickrage answered {result.result!r}"
            return DispatchResult(
                success=result.added,
                detail=detail,
                backend=sickrage.SERVICE_NAME,
                approved=result.added and policy.approves(sickrage.SERVICE_NAME),
            )
        return DispatchResult.disabled("no TV backend is enabled")


class MovieDispatcher:
    def __init__(
        self,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._external = external
        self._transport = transport

    async def dispatch(self, settings: DispatchSettings, request: MediaRequest) -> DispatchResult:
        if not settings.couchpotato.enabled:
            return DispatchResult.disabled("couchpotato is disabled")
        client = CouchPotatoClient(settings.couchpotato, self._external, transport=self._transport)
        added = await client.add_movie(request)
        return DispatchResult(
            success=added,
            detail="couchpotato added the movie" if added else "couchpotato refused the movie",
            backend=couchpotato.SERVICE_NAME,
            approved=added,
        )


class AlbumDispatcher:
    def __init__(
        self,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._external = external
        self._transport = transport

    async def dispatch(self, settings: DispatchSettings, request: MediaRequest) -> DispatchResult:
        if not settings.headphones.enabled:
            return DispatchResult.disabled("headphones is disabled")
        client = HeadphonesClient(settings.headphones, self._external, transport=self._transport)
        added = await client.add_album(request)
        approved = added and should_auto_approve(
            ItemKind.ALBUM,
            settings.approval,
            is_admin=False,
            requested_users=request.requested_users,
        )
        return DispatchResult(
            success=added,
            detail="headphones queued the album" if added else "headphones refused the album",
            backend=headphones.SERVICE_NAME,
            approved=approved,
        )


class DispatcherRegistry:
    """Lookup table from item kind to its dispatcher."""

    def __init__(self, dispatchers: Mapping[ItemKind, DispatchPort]) -> None:
        self._dispatchers = dict(dispatchers)

    @classmethod
    def default(
        cls,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DispatcherRegistry":
        return cls(
            {
                ItemKind.TV_SHOW: TvDispatcher(external, transport=transport),
                ItemKind.MOVIE: MovieDispatcher(external, transport=transport),
                ItemKind.ALBUM: AlbumDispatcher(external, transport=transport),
            }
        )

    def for_kind(self, item_kind: ItemKind) -> DispatchPort:
        try:
            return self._dispatchers[item_kind]
        except KeyError:
            raise UnknownItemKindError(item_kind) from None


def apply_approval(request: MediaRequest, result: DispatchResult) -> MediaRequest:
    """Return the request snapshot to persist after a successful dispatch.

    Approval is only ever granted here, never revoked.
    """

    if result.approved and not request.approved:
        return replace(request, approved=True)
    return request


__all__ = [
    "AlbumDispatcher",
    "DispatcherRegistry",
    "MovieDispatcher",
    "TvDispatcher",
    "apply_approval",
]
