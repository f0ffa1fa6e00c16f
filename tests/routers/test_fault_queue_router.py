from __future__ import annotations

from collections.abc import Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from faultqueue.config import override_runtime_env
from faultqueue.errors import PassInProgressError
from faultqueue.main import create_app
from faultqueue.services.fault_store import SqlFaultRecordStore
from faultqueue.services.payload_codec import encode_request
from tests.helpers import make_request


def _sonarr_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "tvmaze.local":
        return httpx.Response(200, json={"externals": {"thetvdb": 67}})
    return httpx.Response(201, json={"title": "Example Show"})


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setenv("SONARR_ENABLED", "true")
    monkeypatch.setenv("SONARR_URL", "http://sonarr.local")
    monkeypatch.setenv("TVMAZE_URL", "http://tvmaze.local")
    monkeypatch.setenv("EXTERNAL_RETRY_MAX", "0")
    override_runtime_env(None)
    app = create_app(transport=httpx.MockTransport(_sonarr_handler))
    with TestClient(app) as test_client:
        yield test_client


def _seed(store: SqlFaultRecordStore) -> list[int]:
    return [
        store.enqueue(
            item_kind="TvShow",
            fault_kind="MissingInformation",
            payload=encode_request(make_request(request_id=1, title="Show A")),
            primary_identifier="12345",
        ).id,
        store.enqueue(
            item_kind="Movie",
            fault_kind="TransientDispatchFailure",
            payload=encode_request(make_request(request_id=2, item_kind="Movie", title="Heat")),
        ).id,
    ]


def test_health_reports_scheduler_state(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["status"] == "up"
    assert body["data"]["scheduler_started"] is False


def test_list_returns_envelope_with_titles(client: TestClient) -> None:
    ids = _seed(SqlFaultRecordStore())

    response = client.get("/api/v1/fault-queue", params={"item_kind": "Movie"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["total"] == 1
    assert body["data"]["items"][0]["id"] == ids[1]
    assert body["data"]["items"][0]["title"] == "Heat"


def test_list_rejects_unknown_filter(client: TestClient) -> None:
    response = client.get("/api/v1/fault-queue", params={"fault_kind": "Expired"})

    assert response.status_code == 422
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"


def test_stats_endpoint(client: TestClient) -> None:
    _seed(SqlFaultRecordStore())

    response = client.get("/api/v1/fault-queue/stats")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert data["by_fault_kind"] == {"MissingInformation": 1, "TransientDispatchFailure": 1}
    assert data["stale"] == 0
    assert data["last_pass_at"] is None


def test_delete_single_record(client: TestClient) -> None:
    ids = _seed(SqlFaultRecordStore())

    response = client.delete(f"/api/v1/fault-queue/{ids[0]}")
    missing = client.delete("/api/v1/fault-queue/9999")

    assert response.status_code == 200
    assert response.json()["data"] == {"purged": 1}
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"
    assert "X-Debug-Id" in missing.headers


def test_bulk_purge(client: TestClient) -> None:
    ids = _seed(SqlFaultRecordStore())

    response = client.post("/api/v1/fault-queue/purge", json={"ids": ids})
    empty = client.post("/api/v1/fault-queue/purge", json={"ids": []})

    assert response.json()["data"] == {"purged": 2}
    assert empty.status_code == 422
    assert SqlFaultRecordStore().list_all() == []


def test_reconcile_runs_a_pass(client: TestClient) -> None:
    ids = _seed(SqlFaultRecordStore())

    response = client.post("/api/v1/fault-queue/reconcile")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert data["dispatched"] == 1
    assert data["retained"] == 1
    assert data["aborted"] is False
    remaining = SqlFaultRecordStore().list_all()
    assert [record.id for record in remaining] == [ids[1]]

    stats = client.get("/api/v1/fault-queue/stats").json()["data"]
    assert stats["last_pass_at"] is not None


def test_reconcile_conflicts_while_a_pass_is_running(client: TestClient) -> None:
    scheduler = client.app.state.reconcile_scheduler

    async def _locked_trigger() -> None:
        raise PassInProgressError("a reconciliation pass is already running")

    scheduler.trigger = _locked_trigger  # type: ignore[method-assign]
    response = client.post("/api/v1/fault-queue/reconcile")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"
