"""CouchPotato client used to hand movies to the movie scheduler."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from faultqueue.config import CouchPotatoConfig, ExternalCallConfig
from faultqueue.core.types import MediaRequest
from faultqueue.integrations.http import ServiceHttpClient

SERVICE_NAME = "couchpotato"


class CouchPotatoClient:
    def __init__(
        self,
        config: CouchPotatoConfig,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.base_url:
            raise ValueError("CouchPotato base_url is required")
        self._config = config
        self._http = ServiceHttpClient.from_config(
            SERVICE_NAME, config.base_url, external, transport=transport
        )

    async def add_movie(self, request: MediaRequest) -> bool:
        """Return ``True`` when CouchPotato accepted the movie."""

        params: dict[str, Any] = {"title": request.title, "identifier": request.imdb_id or ""}
        if self._config.profile_id:
            params["profile_id"] = self._config.profile_id
        response = await self._http.request(
            "GET",
            f"/api/{self._config.api_key or ''}/movie.add/",
            params=params,
            idempotency_key=f"{SERVICE_NAME}:{request.request_id}",
        )
        if response.status_code >= 400:
            return False
        body = self._http.decode_json(response)
        return isinstance(body, Mapping) and bool(body.get("success"))
