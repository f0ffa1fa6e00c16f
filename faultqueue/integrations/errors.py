"""Transport and protocol failures raised by downstream clients."""

from __future__ import annotations

from collections.abc import Mapping


class DownstreamError(RuntimeError):
    """Base exception raised when a downstream call fails at the transport level."""

    def __init__(self, service: str, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.service = service
        self.retryable = retryable


class DownstreamTimeoutError(DownstreamError):
    """Raised when a request exceeded the configured timeout."""

    def __init__(self, service: str, timeout_ms: int) -> None:
        super().__init__(service, f"{service} timed out after {timeout_ms}ms", retryable=True)
        self.timeout_ms = timeout_ms


class DownstreamInvalidResponseError(DownstreamError):
    """Raised when a payload cannot be decoded."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(service, message, retryable=False)


class DownstreamHTTPStatusError(DownstreamError):
    """Raised when the service answered with a server error or rate limit."""

    def __init__(
        self,
        service: str,
        status_code: int,
        message: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
        retry_after_ms: int | None = None,
    ) -> None:
        super().__init__(service, message, retryable=True)
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.body = body
        self.retry_after_ms = retry_after_ms


__all__ = [
    "DownstreamError",
    "DownstreamHTTPStatusError",
    "DownstreamInvalidResponseError",
    "DownstreamTimeoutError",
]
