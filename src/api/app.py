"""FastAPI application factory."""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from .routes import webhooks_router
from ..container import configure_from_settings, get_container

logger = logging.getLogger(__name__)

SERVICE_NAME = "Asana→Telegram Bot"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    from ..scheduler.jobs import JobRegistry, create_report_jobs
    from ..scheduler.scheduler import ReportScheduler

    container = configure_from_settings(get_container())
    settings = container.settings

    missing = settings.missing_variables()
    if missing:
        logger.warning(f"Environment variables not set: {', '.join(missing)}")

    scheduler = None
    if settings.scheduler.enabled and settings.asana.get_project_gids():
        registry = JobRegistry()
        create_report_jobs(registry, container, settings.scheduler)
        scheduler = ReportScheduler(registry, timezone=settings.scheduler.timezone)
        scheduler.start()

    app.state.started_at = time.monotonic()
    yield

    if scheduler is not None:
        scheduler.stop()
    pending = container.notification_service.aggregator.cancel_all()
    if pending:
        logger.warning(f"Dropped {pending} pending task notification(s) on shutdown")


def create_app(
    title: str = "Asana Telegram Notifier",
    version: str = "1.0.0",
) -> FastAPI:
    """Create FastAPI application.

    Args:
        title: API title
        version: API version

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title=title,
        version=version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.started_at = time.monotonic()

    app.include_router(webhooks_router)

    @app.get("/")
    async def status() -> dict:
        """Service status with uptime."""
        uptime = int(time.monotonic() - app.state.started_at)
        return {"status": "ok", "service": SERVICE_NAME, "uptime": f"{uptime}s"}

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy", "version": version}

    return app


# Create default app instance
app = create_app()
