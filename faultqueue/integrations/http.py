"""Shared httpx request helper for the downstream service clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from faultqueue.config import ExternalCallConfig
from faultqueue.integrations.errors import (
    DownstreamError,
    DownstreamHTTPStatusError,
    DownstreamInvalidResponseError,
    DownstreamTimeoutError,
)
from faultqueue.utils.retry import RetryDirective, RetryPolicy, with_retry


def _parse_retry_after_ms(headers: Mapping[str, Any]) -> int | None:
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        numeric = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return max(0, numeric * 1000)


def _build_timeout(timeout_ms: int) -> httpx.Timeout:
    timeout_seconds = max(timeout_ms, 100) / 1000
    return httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0))


@dataclass(slots=True)
class ServiceHttpClient:
    """Issue requests against one downstream service.

    Responses below 500 are returned to the caller, which decides whether the
    body means success. Rate limits, server errors and transport failures are
    retried per the policy and then raised as :class:`DownstreamError`.
    """

    service: str
    base_url: str
    headers: Mapping[str, str] | None = None
    transport: httpx.AsyncBaseTransport | None = None
    timeout_ms: int = 10_000
    max_attempts: int = 3
    backoff_base_ms: int = 250
    jitter_pct: int = 20

    @classmethod
    def from_config(
        cls,
        service: str,
        base_url: str,
        external: ExternalCallConfig,
        *,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ServiceHttpClient":
        return cls(
            service=service,
            base_url=base_url,
            headers=headers,
            transport=transport,
            timeout_ms=external.timeout_ms,
            max_attempts=external.retry_max + 1,
            backoff_base_ms=external.backoff_base_ms,
            jitter_pct=external.jitter_pct,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        idempotency_key: str | None = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if self.headers:
            headers.update(self.headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        async def _perform_request() -> httpx.Response:
            try:
                async with httpx.AsyncClient(
                    base_url=self.base_url.rstrip("/"),
                    timeout=_build_timeout(self.timeout_ms),
                    headers=headers,
                    transport=self.transport,
                ) as client:
                    response = await client.request(method, path, params=params, json=json)
            except httpx.TimeoutException as exc:
                raise DownstreamTimeoutError(self.service, self.timeout_ms) from exc
            except httpx.HTTPError as exc:
                raise DownstreamError(
                    self.service, f"{self.service} request failed: {exc}", retryable=True
                ) from exc

            if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
                raise DownstreamHTTPStatusError(
                    self.service,
                    response.status_code,
                    f"{self.service} rate limited the request",
                    headers=response.headers,
                    retry_after_ms=_parse_retry_after_ms(response.headers),
                )
            if response.status_code >= 500:
                raise DownstreamHTTPStatusError(
                    self.service,
                    response.status_code,
                    f"{self.service} returned a server error",
                    headers=response.headers,
                    body=response.text[:200],
                )
            return response

        def _classify(error: Exception) -> RetryDirective:
            if isinstance(error, DownstreamHTTPStatusError):
                return RetryDirective(retry=True, delay_override_ms=error.retry_after_ms)
            if isinstance(error, DownstreamError):
                return RetryDirective(retry=error.retryable)
            return RetryDirective(retry=False)

        policy = RetryPolicy(
            attempts=max(1, int(self.max_attempts)),
            base_ms=max(1, int(self.backoff_base_ms)),
            jitter_pct=max(0, int(self.jitter_pct)),
        )
        return await with_retry(_perform_request, policy=policy, classify_err=_classify)

    def decode_json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise DownstreamInvalidResponseError(
                self.service, f"{self.service} returned invalid JSON"
            ) from exc


__all__ = ["ServiceHttpClient"]
