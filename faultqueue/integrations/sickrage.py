"""SickRage client used as the secondary TV scheduler."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from faultqueue.config import ExternalCallConfig, SickRageConfig
from faultqueue.core.types import MediaRequest
from faultqueue.integrations.http import ServiceHttpClient

SERVICE_NAME = "sickrage"


@dataclass(slots=True, frozen=True)
class SickRageResult:
    result: str | None
    message: str | None

    @property
    def added(self) -> bool:
        return (self.result or "").lower() == "success"


class SickRageClient:
    def __init__(
        self,
        config: SickRageConfig,
        external: ExternalCallConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.base_url:
            raise ValueError("SickRage base_url is required")
        self._config = config
        self._http = ServiceHttpClient.from_config(
            SERVICE_NAME, config.base_url, external, transport=transport
        )

    async def add_show(self, request: MediaRequest) -> SickRageResult:
        params: dict[str, Any] = {
            "cmd": "show.addnew",
            "tvdbid": request.provider_id,
            "status": "wanted",
        }
        if self._config.quality_profile:
            params["initial"] = self._config.quality_profile
        response = await self._http.request(
            "GET",
            f"/api/{self._config.api_key or ''}/",
            params=params,
            idempotency_key=f"{SERVICE_NAME}:{request.request_id}",
        )
        if response.status_code >= 400:
            return SickRageResult(result="failure", message=f"status {response.status_code}")
        body = self._http.decode_json(response)
        if not isinstance(body, Mapping):
            return SickRageResult(result=None, message="unexpected payload")
        return SickRageResult(
            result=str(body.get("result")) if body.get("result") is not None else None,
            message=str(body.get("message")) if body.get("message") is not None else None,
        )
