from __future__ import annotations

import asyncio
import contextlib
import logging
import os

from fastapi import FastAPI

from supplyhub.core.logging_config import configure_logging
from supplyhub.db.base import Base
from supplyhub.db.session import engine

# Register models
from supplyhub.db import models  # noqa: F401

from supplyhub.services.admin.events_api import router as events_admin_router
from supplyhub.services.capacity.api import router as capacity_router
from supplyhub.services.orders.api import router as orders_router

logger = logging.getLogger(__name__)

DISPATCHER_ENABLED = os.getenv("EVENT_DISPATCHER_ENABLED", "1") not in ("0", "false", "False")
DISPATCHER_POLL_SECONDS = float(os.getenv("EVENT_DISPATCHER_POLL_SECONDS", "1.0"))
CREATE_SCHEMA = os.getenv("DB_CREATE_ALL", "1") not in ("0", "false", "False")


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI):
    # Dev-friendly schema creation (migrations are available for real upgrades)
    if CREATE_SCHEMA:
        Base.metadata.create_all(bind=engine)

    task = None
    if DISPATCHER_ENABLED:
        # Deliver outbox events to webhook subscribers in-process.
        from supplyhub.events.dispatcher import run_dispatcher_forever

        task = asyncio.create_task(run_dispatcher_forever(poll_interval_seconds=DISPATCHER_POLL_SECONDS))
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="SupplyHub Capacity Core", lifespan=_lifespan)
    app.include_router(capacity_router)
    app.include_router(orders_router)
    app.include_router(events_admin_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
