"""Structured log events emitted by the reconciler and the operator API."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - import hints only
    from faultqueue.reconciler.types import ItemOutcome, PassSummary

_SCALARS = (str, int, float, bool, type(None))


def _scalar(name: str, value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, _SCALARS):
        raise TypeError(f"Field '{name}' must be a flat JSON-compatible value")
    return value


def _check_meta(value: Any, path: str = "meta") -> None:
    if isinstance(value, _SCALARS):
        return
    if isinstance(value, Mapping):
        for key, nested in value.items():
            if not isinstance(key, str):
                raise TypeError(f"Keys in '{path}' must be strings")
            _check_meta(nested, f"{path}.{key}")
        return
    if isinstance(value, (list, tuple)):
        for index, nested in enumerate(value):
            _check_meta(nested, f"{path}[{index}]")
        return
    raise TypeError(f"Unsupported value in '{path}': {type(value).__name__}")


def log_event(logger: Any, event: str, /, *, level: int = logging.INFO, **fields: Any) -> None:
    """Log ``event`` with flat ``fields``; only ``meta`` may nest."""

    if not isinstance(event, str) or not event.strip():
        raise ValueError("event must be a non-empty string")

    meta = fields.pop("meta", None)
    extra: dict[str, Any] = {"event": event}
    extra.update({name: _scalar(name, value) for name, value in fields.items()})
    if meta is not None:
        if not isinstance(meta, Mapping):
            raise TypeError("meta must be a mapping if provided")
        _check_meta(meta)
        extra["meta"] = dict(meta)

    logger.log(level, event, extra=extra)


def log_item_outcome(logger: Any, outcome: "ItemOutcome", *, item_kind: str, fault_kind: str) -> None:
    """One line per processed record; failed outcomes are logged at WARNING."""

    log_event(
        logger,
        "fault_queue.item",
        level=logging.WARNING if outcome.failed else logging.INFO,
        record_id=outcome.record_id,
        item_kind=item_kind,
        fault_kind=fault_kind,
        action=outcome.action,
        detail=outcome.detail,
        error=outcome.error,
    )


def log_pass_summary(logger: Any, summary: "PassSummary") -> None:
    log_event(
        logger,
        "fault_queue.pass",
        level=logging.ERROR if summary.aborted else logging.INFO,
        component="reconciler.driver",
        status="aborted" if summary.aborted else "completed",
        total=summary.total,
        dispatched=summary.dispatched,
        retained=summary.retained,
        skipped=summary.skipped,
        errors=summary.errors,
        duration_ms=summary.duration_ms,
    )


__all__ = ["log_event", "log_item_outcome", "log_pass_summary"]
