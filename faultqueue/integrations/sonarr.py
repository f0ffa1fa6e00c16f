"""Sonarr client used to hand TV shows to the Sonarr scheduler."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from faultqueue.config import ExternalCallConfig, SonarrConfig
from faultqueue.core.types import MediaRequest
from faultqueue.integrations.http import ServiceHttpClient

SERVICE_NAME = "sonarr"


@dataclass(slots=True, frozen=True)
class SonarrAddResult:
    title: str | None
    status_code: int
    body: Any

    @property
    def added(self) -> bool:
        return bool(self.title and self.title.strip())

    def describe(self) -> str:
        if self.added:
            return f"sonarr added {self.title!r}"
        if isinstance(self.body, list) and self.body:
            first = self.body[0]
            if isinstance(first, Mapping) and first.get("errorMessage"):
                return f"sonarr rejected the series: {first['errorMessage']}"
        return f"sonarr did not add the series (status {self.status_code})"


def build_series_payload(config: SonarrConfig, request: MediaRequest) -> dict[str, Any]:
    """Translate a request snapshot into Sonarr's series body."""

    monitor_all = not request.season_list or (request.seasons_requested or "").lower() == "all"
    wanted = set(request.season_list)
    seasons = [
        {"seasonNumber": season, "monitored": monitor_all or season in wanted}
        for season in sorted(wanted)
    ]
    payload: dict[str, Any] = {
        "tvdbId": request.provider_id,
        "title": request.title,
        "seasonFolder": config.season_folders,
        "monitored": True,
        "seasons": seasons,
        "addOptions": {
            "ignoreEpisodesWithFiles": False,
            "ignoreEpisodesWithoutFiles": False,
            "searchForMissingEpisodes": True,
        },
    }
    if config.quality_profile is not None:
        payload["qualityProfileId"] = config.quality_profile
    if config.root_path:
        payload["rootFolderPath"] = config.root_path
    return payload


class SonarrClient:
    def __init__(
        self,
        config: SonarrConfig,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.base_url:
            raise ValueError("Sonarr base_url is required")
        self._config = config
        self._http = ServiceHttpClient.from_config(
            SERVICE_NAME,
            config.base_url,
            external,
            headers={"X-Api-Key": config.api_key or ""},
            transport=transport,
        )

    async def add_series(self, request: MediaRequest) -> SonarrAddResult:
        response = await self._http.request(
            "POST",
            "/api/series",
            json=build_series_payload(self._config, request),
            idempotency_key=f"{SERVICE_NAME}:{request.request_id}",
        )
        body = self._http.decode_json(response) if response.content else None
        title = body.get("title") if isinstance(body, Mapping) else None
        return SonarrAddResult(
            title=str(title) if title is not None else None,
            status_code=response.status_code,
            body=body,
        )
