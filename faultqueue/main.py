"""FastAPI application exposing the fault queue operator API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI

from faultqueue import __version__
from faultqueue.config import load_config
from faultqueue.db import init_db
from faultqueue.logging import configure_logging, get_logger
from faultqueue.logging_events import log_event
from faultqueue.middleware.errors import setup_exception_handlers
from faultqueue.reconciler import build_scheduler
from faultqueue.routers.fault_queue_router import router as fault_queue_router
from faultqueue.utils.time import now_utc

logger = get_logger(__name__)

API_PREFIX = "/api/v1"


def create_app(*, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the application.

    ``transport`` is handed to every outbound HTTP client; tests pass an
    ``httpx.MockTransport`` here.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        config = load_config()
        configure_logging(config.logging.level, config.logging.file)
        init_db()

        scheduler = build_scheduler(config, transport=transport)
        app.state.reconcile_scheduler = scheduler
        app.state.start_time = now_utc()
        started = scheduler.start()
        log_event(
            logger,
            "startup.complete",
            component="main",
            version=__version__,
            scheduler_started=started,
            interval_s=config.reconciler.interval_s,
        )
        try:
            yield
        finally:
            await scheduler.stop()
            logger.info("event=shutdown.complete")

    app = FastAPI(title="Fault Queue Reconciler", version=__version__, lifespan=lifespan)
    setup_exception_handlers(app)
    app.include_router(fault_queue_router, prefix=f"{API_PREFIX}/fault-queue")

    @app.get("/api/health", tags=["System"])
    def health() -> dict[str, Any]:
        scheduler = getattr(app.state, "reconcile_scheduler", None)
        return {
            "ok": True,
            "data": {
                "status": "up",
                "version": __version__,
                "scheduler_started": bool(scheduler and scheduler.started),
                "pass_running": bool(scheduler and scheduler.is_running),
            },
            "error": None,
        }

    return app


app = create_app()


__all__ = ["API_PREFIX", "app", "create_app"]
