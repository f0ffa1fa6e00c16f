"""Domain DTOs for parked requests and their request snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class ItemKind(str, Enum):
    """Media kinds a request can target."""

    TV_SHOW = "TvShow"
    MOVIE = "Movie"
    ALBUM = "Album"


class FaultKind(str, Enum):
    """Why a request is parked in the fault queue."""

    MISSING_INFORMATION = "MissingInformation"
    TRANSIENT_DISPATCH_FAILURE = "TransientDispatchFailure"


def _coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


@dataclass(slots=True)
class MediaRequest:
    """Snapshot of a user request waiting to be handed to a downstream backend.

    ``extra`` keeps any keys the snapshot carried that this version does not
    model, so a decode/encode cycle never drops data written by another
    component.
    """

    request_id: int
    item_kind: str
    title: str
    provider_id: int | None = None
    imdb_id: str | None = None
    musicbrainz_id: str | None = None
    artist_name: str | None = None
    release_year: int | None = None
    seasons_requested: str | None = None
    season_list: list[int] = field(default_factory=list)
    requested_users: list[str] = field(default_factory=list)
    approved: bool = False
    available: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        "request_id",
        "item_kind",
        "title",
        "provider_id",
        "imdb_id",
        "musicbrainz_id",
        "artist_name",
        "release_year",
        "seasons_requested",
        "season_list",
        "requested_users",
        "approved",
        "available",
    )

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        for name in self._FIELDS:
            payload[name] = getattr(self, name)
        payload["season_list"] = list(self.season_list)
        payload["requested_users"] = list(self.requested_users)
        return payload

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "MediaRequest":
        request_id = _coerce_int(payload.get("request_id"))
        if request_id is None:
            raise ValueError("request snapshot is missing request_id")
        item_kind = _coerce_str(payload.get("item_kind"))
        if item_kind is None:
            raise ValueError("request snapshot is missing item_kind")
        extra = {key: value for key, value in payload.items() if key not in cls._FIELDS}
        return cls(
            request_id=request_id,
            item_kind=item_kind,
            title=str(payload.get("title") or ""),
            provider_id=_coerce_int(payload.get("provider_id")),
            imdb_id=_coerce_str(payload.get("imdb_id")),
            musicbrainz_id=_coerce_str(payload.get("musicbrainz_id")),
            artist_name=_coerce_str(payload.get("artist_name")),
            release_year=_coerce_int(payload.get("release_year")),
            seasons_requested=_coerce_str(payload.get("seasons_requested")),
            season_list=[
                season
                for season in (_coerce_int(item) for item in payload.get("season_list") or [])
                if season is not None
            ],
            requested_users=[str(user) for user in payload.get("requested_users") or []],
            approved=_coerce_flag(payload.get("approved")),
            available=_coerce_flag(payload.get("available")),
            extra=extra,
        )

    def with_provider_id(self, provider_id: int) -> "MediaRequest":
        return replace(self, provider_id=int(provider_id))


@dataclass(slots=True)
class FaultRecord:
    """A parked request that previously failed to dispatch.

    ``item_kind`` and ``fault_kind`` hold the raw stored values; the router
    validates them so a corrupt row is isolated instead of failing the load.
    """

    id: int
    item_kind: str
    fault_kind: str
    payload: bytes
    primary_identifier: str | None = None
    last_retry: datetime | None = None
    created_at: datetime | None = None


__all__ = ["FaultKind", "FaultRecord", "ItemKind", "MediaRequest"]
