"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from retryqueue.api.routes import admin, health
from retryqueue.core.config import AppSettings
from retryqueue.core.logging import configure_logging
from retryqueue.core.protocols import IRecordStore
from retryqueue.core.types import Clock, utcnow
from retryqueue.engine.maintenance import QueueMaintenance
from retryqueue.persistence import create_store


def create_app(
    settings: AppSettings | None = None,
    store: IRecordStore | None = None,
    clock: Clock = utcnow,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        app_settings = settings or AppSettings()
        configure_logging(json_output=app_settings.log_json, level=app_settings.log_level)
        app.state.settings = app_settings
        app.state.maintenance = QueueMaintenance(
            store if store is not None else create_store(app_settings),
            max_record_age_ms=app_settings.queue.max_record_age_ms,
            clock=clock,
        )
        yield

    app = FastAPI(
        title="RetryQueue Admin",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(admin.router, prefix="/admin")
    return app
