"""Clients for the downstream acquisition backends and metadata lookup."""

from .contracts import DispatchPort, DispatchResult, EnrichmentPort
from .errors import (
    DownstreamError,
    DownstreamHTTPStatusError,
    DownstreamInvalidResponseError,
    DownstreamTimeoutError,
)

__all__ = [
    "DispatchPort",
    "DispatchResult",
    "DownstreamError",
    "DownstreamHTTPStatusError",
    "DownstreamInvalidResponseError",
    "DownstreamTimeoutError",
    "EnrichmentPort",
]
