"""Round-trip codec for request snapshots stored in the fault queue.

Snapshots are compact UTF-8 JSON with sorted keys, so re-encoding a decoded
snapshot reproduces the stored bytes.
"""

from __future__ import annotations

import json
from typing import Any

from faultqueue.core.types import MediaRequest
from faultqueue.errors import PayloadDecodeError

StoredPayload = bytes | bytearray | memoryview | str


def _fallback(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return str(value)


def encode_request(request: MediaRequest) -> bytes:
    """Serialise ``request`` to UTF-8 JSON with a stable key order."""

    text = json.dumps(
        request.to_mapping(),
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=_fallback,
    )
    return text.encode("utf-8")


def _as_text(content: StoredPayload) -> str:
    if isinstance(content, str):
        return content
    try:
        return bytes(content).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(f"request snapshot is not UTF-8: {exc}") from exc


def decode_request(content: StoredPayload) -> MediaRequest:
    """Decode a stored snapshot, raising :class:`PayloadDecodeError` on bad data."""

    if not isinstance(content, (bytes, bytearray, memoryview, str)):
        raise PayloadDecodeError(f"unsupported snapshot type {type(content).__name__}")
    text = _as_text(content).strip()
    if not text:
        raise PayloadDecodeError("request snapshot is empty")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PayloadDecodeError(f"request snapshot is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise PayloadDecodeError("request snapshot must be a JSON object")
    try:
        return MediaRequest.from_mapping(payload)
    except ValueError as exc:
        raise PayloadDecodeError(str(exc)) from exc


__all__ = ["decode_request", "encode_request"]
