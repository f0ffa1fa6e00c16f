"""TVMaze lookup used to resolve TVDB ids for incomplete TV requests."""

from __future__ import annotations

from collections.abc import Mapping

import httpx

from faultqueue.config import ExternalCallConfig, TvMazeConfig
from faultqueue.integrations.http import ServiceHttpClient
from faultqueue.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "tvmaze"


class TvMazeClient:
    """Enrichment port backed by the public TVMaze API."""

    def __init__(
        self,
        config: TvMazeConfig,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = ServiceHttpClient.from_config(
            SERVICE_NAME, config.base_url, external, transport=transport
        )

    async def lookup(self, provider_key: int) -> int | None:
        """Return the TVDB id for TVMaze show ``provider_key`` or ``None``."""

        response = await self._http.request("GET", f"/shows/{int(provider_key)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if response.status_code >= 400:
            logger.warning(
                "event=tvmaze.lookup provider_key=%s result=rejected status=%s",
                provider_key,
                response.status_code,
            )
            return None
        body = self._http.decode_json(response)
        if not isinstance(body, Mapping):
            return None
        externals = body.get("externals")
        if not isinstance(externals, Mapping):
            return None
        tvdb = externals.get("thetvdb")
        if tvdb is None or isinstance(tvdb, bool):
            return None
        try:
            return int(tvdb)
        except (TypeError, ValueError):
            return None
