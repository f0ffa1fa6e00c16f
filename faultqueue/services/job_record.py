"""Completion markers for scheduled jobs."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from faultqueue.db import session_scope
from faultqueue.models import ScheduledJob
from faultqueue.utils.time import utcnow_naive


class SqlJobRecorder:
    """Stores the last run time of each named job in ``scheduled_jobs``."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], AbstractContextManager[Session]] = session_scope,
        now_factory: Callable[[], datetime] = utcnow_naive,
    ) -> None:
        self._session_factory = session_factory
        self._now_factory = now_factory

    def record(self, name: str) -> None:
        now = self._now_factory()
        with self._session_factory() as session:
            job = session.execute(
                select(ScheduledJob).where(ScheduledJob.name == name)
            ).scalar_one_or_none()
            if job is None:
                session.add(ScheduledJob(name=name, last_run=now, run_count=1))
                return
            job.last_run = now
            job.run_count = int(job.run_count or 0) + 1

    def last_run(self, name: str) -> datetime | None:
        with self._session_factory() as session:
            job = session.execute(
                select(ScheduledJob).where(ScheduledJob.name == name)
            ).scalar_one_or_none()
            return job.last_run if job is not None else None

    def run_count(self, name: str) -> int:
        with self._session_factory() as session:
            job = session.execute(
                select(ScheduledJob).where(ScheduledJob.name == name)
            ).scalar_one_or_none()
            return int(job.run_count or 0) if job is not None else 0


__all__ = ["SqlJobRecorder"]
