"""Connection diagnostics service entry point with lifespan management.

Startup: load settings, configure logging, build the ApiConnection and
ConnectionMonitor, start the background monitor loop.
Shutdown: cancel the monitor loop.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from faceit_client.config.settings import ClientSettings
from faceit_client.connection import ApiConnection
from faceit_client.logging_config import configure_logging
from faceit_client.middleware.error_handler import register_error_handlers
from faceit_client.monitor.connection_monitor import ConnectionMonitor
from faceit_client.routers.connection import create_connection_router

logger = logging.getLogger(__name__)


def create_app(settings: ClientSettings | None = None) -> FastAPI:
    """Create and configure the diagnostics FastAPI application."""
    settings = settings or ClientSettings()

    connection = ApiConnection.from_settings(settings)
    monitor = ConnectionMonitor(
        connection,
        interval_seconds=settings.monitor_interval_seconds,
        history_size=settings.history_size,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        logger.info(
            "Starting connection diagnostics on port %d with %d candidates",
            settings.port,
            len(connection.registry),
        )
        monitor_task = asyncio.create_task(monitor.monitor_loop())

        yield

        logger.info("Shutting down connection diagnostics")
        monitor_task.cancel()
        try:
            await monitor_task
        except asyncio.CancelledError:
            pass

    app = FastAPI(
        title="FACE.IT Connection Diagnostics",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_error_handlers(app)
    app.include_router(create_connection_router(monitor))

    app.state.connection = connection
    app.state.monitor = monitor
    return app


app = create_app()
