"""Logging setup for the reconciler process."""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "event",
}


def _render(value: Any) -> str:
    text = str(value)
    return f'"{text}"' if " " in text else text


class EventFieldFormatter(logging.Formatter):
    """Append fields passed through ``extra`` as ``key=value`` pairs.

    Records emitted with ``log_event`` carry the event name as the message and
    their fields in ``extra``; plain log lines are left as they are.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if getattr(record, "event", None) is None:
            return line
        fields = [
            f"{key}={_render(value)}"
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        ]
        return f"{line} {' '.join(fields)}" if fields else line


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Install stdout (and optional file) handlers on the root logger."""

    formatter = EventFieldFormatter(LOG_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
    # httpx logs one line per request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
