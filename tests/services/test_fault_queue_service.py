from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from faultqueue.db import session_scope
from faultqueue.errors import NotFoundError, ValidationAppError
from faultqueue.services.fault_queue_service import FaultQueueService
from faultqueue.services.fault_store import SqlFaultRecordStore
from faultqueue.services.job_record import SqlJobRecorder
from faultqueue.services.payload_codec import encode_request
from faultqueue.utils.time import utcnow_naive
from tests.helpers import make_request


@pytest.fixture
def service() -> FaultQueueService:
    return FaultQueueService(job_name="fault_queue_handler", stale_after_hours=72)


def _seed() -> list[int]:
    store = SqlFaultRecordStore()
    old = utcnow_naive() - timedelta(days=5)
    ids = [
        store.enqueue(
            item_kind="TvShow",
            fault_kind="MissingInformation",
            payload=encode_request(make_request(request_id=1, title="Show A")),
            primary_identifier="12345",
            created_at=old,
        ).id,
        store.enqueue(
            item_kind="Movie",
            fault_kind="TransientDispatchFailure",
            payload=encode_request(make_request(request_id=2, item_kind="Movie", title="Heat")),
        ).id,
        store.enqueue(item_kind="Album", fault_kind="TransientDispatchFailure", payload=b"garbage").id,
    ]
    return ids


def test_list_entries_decodes_titles_and_filters(service: FaultQueueService) -> None:
    ids = _seed()

    with session_scope() as session:
        everything = service.list_entries(session, page=1, page_size=10)
        transient = service.list_entries(
            session, page=1, page_size=10, fault_kind="TransientDispatchFailure"
        )
        movies = service.list_entries(session, page=1, page_size=10, item_kind="Movie")

    assert everything.total == 3
    assert [item.id for item in everything.items] == ids
    assert everything.items[0].title == "Show A"
    assert everything.items[0].request_id == 1
    assert everything.items[2].decodable is False
    assert everything.items[2].title is None
    assert transient.total == 2
    assert [item.title for item in movies.items] == ["Heat"]


def test_list_entries_paginates(service: FaultQueueService) -> None:
    ids = _seed()

    with session_scope() as session:
        page_two = service.list_entries(session, page=2, page_size=2)

    assert page_two.total == 3
    assert [item.id for item in page_two.items] == ids[2:]


def test_list_entries_rejects_unknown_filters(service: FaultQueueService) -> None:
    with session_scope() as session:
        with pytest.raises(ValidationAppError):
            service.list_entries(session, page=1, page_size=10, fault_kind="Expired")
        with pytest.raises(ValidationAppError):
            service.list_entries(session, page=0, page_size=10)


def test_stats_counts_by_kind_and_staleness(service: FaultQueueService) -> None:
    _seed()
    SqlJobRecorder(now_factory=lambda: datetime(2024, 5, 1, 6, 0, 0)).record("fault_queue_handler")

    with session_scope() as session:
        stats = service.stats(session)

    assert stats.total == 3
    assert stats.by_fault_kind == {"MissingInformation": 1, "TransientDispatchFailure": 2}
    assert stats.by_item_kind == {"TvShow": 1, "Movie": 1, "Album": 1}
    assert stats.stale == 1
    assert stats.last_pass_at == datetime(2024, 5, 1, 6, 0, 0)


def test_purge_removes_requested_ids(service: FaultQueueService) -> None:
    ids = _seed()

    with session_scope() as session:
        purged = service.purge(session, ids=[ids[0], ids[0], 9999], actor="tester")

    assert purged == 1
    assert [record.id for record in SqlFaultRecordStore().list_all()] == ids[1:]


def test_purge_requires_ids(service: FaultQueueService) -> None:
    with session_scope() as session:
        with pytest.raises(ValidationAppError):
            service.purge(session, ids=[])


def test_purge_one_raises_for_unknown_record(service: FaultQueueService) -> None:
    ids = _seed()

    with session_scope() as session:
        service.purge_one(session, ids[1])
        with pytest.raises(NotFoundError):
            service.purge_one(session, 9999)

    assert len(SqlFaultRecordStore().list_all()) == 2
