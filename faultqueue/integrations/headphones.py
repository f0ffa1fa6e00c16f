"""Headphones client used to hand albums to the music scheduler."""

from __future__ import annotations

import httpx

from faultqueue.config import ExternalCallConfig, HeadphonesConfig
from faultqueue.core.types import MediaRequest
from faultqueue.integrations.http import ServiceHttpClient

SERVICE_NAME = "headphones"


def _is_ok(response: httpx.Response) -> bool:
    return response.status_code < 400 and response.text.strip().strip('"').upper() == "OK"


class HeadphonesClient:
    def __init__(
        self,
        config: HeadphonesConfig,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.base_url:
            raise ValueError("Headphones base_url is required")
        self._config = config
        self._http = ServiceHttpClient.from_config(
            SERVICE_NAME, config.base_url, external, transport=transport
        )

    async def _command(self, cmd: str, album_id: str, request_id: int) -> httpx.Response:
        return await self._http.request(
            "GET",
            "/api",
            params={"apikey": self._config.api_key or "", "cmd": cmd, "id": album_id},
            idempotency_key=f"{SERVICE_NAME}:{cmd}:{request_id}",
        )

    async def add_album(self, request: MediaRequest) -> bool:
        """Add the album and queue it for download; ``True`` if both steps answer OK."""

        if not request.musicbrainz_id:
            return False
        added = await self._command("addAlbum", request.musicbrainz_id, request.request_id)
        if not _is_ok(added):
            return False
        queued = await self._command("queueAlbum", request.musicbrainz_id, request.request_id)
        return _is_ok(queued)
