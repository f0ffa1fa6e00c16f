from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

from faultqueue.config import (
    ApprovalConfig,
    CouchPotatoConfig,
    DispatchSettings,
    ExternalCallConfig,
    HeadphonesConfig,
    SickRageConfig,
    SonarrConfig,
)
from faultqueue.core.types import FaultRecord, MediaRequest
from faultqueue.integrations.contracts import DispatchResult

FAST_EXTERNAL = ExternalCallConfig(timeout_ms=1_000, retry_max=0, backoff_base_ms=1, jitter_pct=0)


def make_settings(
    *,
    sonarr: bool = True,
    sickrage: bool = False,
    couchpotato: bool = True,
    headphones: bool = True,
    approval: ApprovalConfig | None = None,
) -> DispatchSettings:
    return DispatchSettings(
        sonarr=SonarrConfig(
            enabled=sonarr,
            base_url="http://sonarr.local",
            api_key="sonarr-key",
            quality_profile=1,
            root_path="/tv",
            season_folders=True,
        ),
        sickrage=SickRageConfig(
            enabled=sickrage,
            base_url="http://sickrage.local",
            api_key="sr-key",
            quality_profile="hd",
        ),
        couchpotato=CouchPotatoConfig(
            enabled=couchpotato,
            base_url="http://couchpotato.local",
            api_key="cp-key",
            profile_id="p1",
        ),
        headphones=HeadphonesConfig(
            enabled=headphones,
            base_url="http://headphones.local",
            api_key="hp-key",
        ),
        approval=approval or ApprovalConfig(),
    )


def make_request(**overrides: Any) -> MediaRequest:
    params: dict[str, Any] = {
        "request_id": 1,
        "item_kind": "TvShow",
        "title": "Example Show",
    }
    params.update(overrides)
    return MediaRequest(**params)


class FakeStore:
    """In-memory fault record store recording every call."""

    def __init__(self, records: Sequence[FaultRecord] = ()) -> None:
        self.records: dict[int, FaultRecord] = {record.id: record for record in records}
        self.calls: list[tuple[str, int]] = []
        self.fail_list = False
        self.fail_delete: set[int] = set()

    def list_all(self) -> list[FaultRecord]:
        if self.fail_list:
            raise RuntimeError("store unreachable")
        return [replace(record) for record in sorted(self.records.values(), key=lambda r: r.id)]

    def update(self, record: FaultRecord) -> None:
        self.calls.append(("update", record.id))
        self.records[record.id] = replace(record)

    def delete(self, record: FaultRecord) -> None:
        if record.id in self.fail_delete:
            raise RuntimeError(f"cannot delete record {record.id}")
        self.calls.append(("delete", record.id))
        self.records.pop(record.id, None)


class FakeRequests:
    def __init__(
        self,
        calls: list[tuple[str, int]] | None = None,
        *,
        fail_for: set[int] | None = None,
    ) -> None:
        self.updated: list[MediaRequest] = []
        self._calls = calls
        self.fail_for = fail_for or set()

    def update_request(self, request: MediaRequest) -> None:
        if request.request_id in self.fail_for:
            raise RuntimeError(f"cannot write request {request.request_id}")
        self.updated.append(request)
        if self._calls is not None:
            self._calls.append(("update_request", request.request_id))


class FakeJobRecorder:
    def __init__(self) -> None:
        self.names: list[str] = []

    def record(self, name: str) -> None:
        self.names.append(name)


class FakeEnrichment:
    def __init__(self, mapping: dict[int, int | None] | None = None, *, error: Exception | None = None) -> None:
        self.mapping = mapping or {}
        self.error = error
        self.calls: list[int] = []

    async def lookup(self, provider_key: int) -> int | None:
        self.calls.append(provider_key)
        if self.error is not None:
            raise self.error
        return self.mapping.get(provider_key)


class FakeDispatcher:
    """Dispatch port answering from a fixed result or raising per request id."""

    def __init__(
        self,
        result: DispatchResult | None = None,
        *,
        errors: dict[int, Exception] | None = None,
    ) -> None:
        self.result = result or DispatchResult(success=True, detail="ok", backend="fake")
        self.errors = errors or {}
        self.calls: list[MediaRequest] = []

    async def dispatch(self, settings: DispatchSettings, request: MediaRequest) -> DispatchResult:
        self.calls.append(request)
        error = self.errors.get(request.request_id)
        if error is not None:
            raise error
        return self.result


class FixedClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment
