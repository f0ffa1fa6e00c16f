"""Database models for the fault queue reconciler."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    LargeBinary,
    String,
)

from faultqueue.core.types import FaultKind, ItemKind
from faultqueue.db import Base


class RequestQueue(Base):
    """A parked request that could not be dispatched downstream."""

    __tablename__ = "request_queue"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(32), nullable=False, default=ItemKind.TV_SHOW.value)
    fault_type = Column(
        String(64),
        nullable=False,
        default=FaultKind.TRANSIENT_DISPATCH_FAILURE.value,
        index=True,
    )
    primary_identifier = Column(String(255), nullable=True)
    content = Column(LargeBinary, nullable=False)
    last_retry = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class RequestedMedia(Base):
    """The request entity; source of truth for approval state."""

    __tablename__ = "requested_media"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(32), nullable=False)
    title = Column(String(512), nullable=False, default="")
    provider_id = Column(Integer, nullable=True)
    imdb_id = Column(String(32), nullable=True)
    musicbrainz_id = Column(String(64), nullable=True)
    approved = Column(Boolean, nullable=False, default=False)
    available = Column(Boolean, nullable=False, default=False)
    content = Column(JSON, nullable=True)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class ScheduledJob(Base):
    """Last completion time of a named background job."""

    __tablename__ = "scheduled_jobs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), unique=True, nullable=False)
    last_run = Column(DateTime, nullable=False)
    run_count = Column(Integer, nullable=False, default=0)
