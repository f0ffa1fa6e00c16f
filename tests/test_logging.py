import logging
from datetime import datetime

import pytest

from faultqueue.logging import EventFieldFormatter
from faultqueue.logging_events import log_event, log_item_outcome, log_pass_summary
from faultqueue.reconciler.types import ItemOutcome, OutcomeAction, PassSummary

LOGGER = logging.getLogger("faultqueue.tests.logging")


def test_log_event_flattens_enums(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER.name)

    log_event(LOGGER, "fault_queue.purge", action=OutcomeAction.DELETE, count=2)

    record = caplog.records[-1]
    assert record.event == "fault_queue.purge"
    assert record.action == "delete"
    assert record.count == 2


def test_log_event_rejects_nested_fields_outside_meta() -> None:
    with pytest.raises(TypeError):
        log_event(LOGGER, "fault_queue.purge", ids=[1, 2])
    with pytest.raises(ValueError):
        log_event(LOGGER, " ")


def test_failed_item_outcome_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER.name)
    outcome = ItemOutcome(record_id=7, action=OutcomeAction.RETAIN, detail="503", error="boom")

    log_item_outcome(LOGGER, outcome, item_kind="movie", fault_kind="transient_dispatch_failure")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.record_id == 7
    assert record.action == "retain"


def test_aborted_pass_summary_logs_error(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER.name)
    summary = PassSummary(started_at=datetime(2024, 1, 1), total=3, aborted=True)

    log_pass_summary(LOGGER, summary)

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.status == "aborted"
    assert record.total == 3


def test_formatter_appends_event_fields() -> None:
    formatter = EventFieldFormatter("%(message)s")
    record = LOGGER.makeRecord(
        LOGGER.name,
        logging.INFO,
        __file__,
        1,
        "fault_queue.pass",
        (),
        None,
        extra={"event": "fault_queue.pass", "status": "completed", "detail": "two words"},
    )

    assert formatter.format(record) == 'fault_queue.pass status=completed detail="two words"'


def test_formatter_leaves_plain_lines_untouched() -> None:
    formatter = EventFieldFormatter("%(message)s")
    record = LOGGER.makeRecord(LOGGER.name, logging.INFO, __file__, 1, "plain", (), None)

    assert formatter.format(record) == "plain"
