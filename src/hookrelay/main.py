"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hookrelay.config import settings
from hookrelay.db.engine import create_db_engine, create_session_factory
from hookrelay.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=settings.json_logs and not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    engine = create_db_engine()

    # Auto-create tables for SQLite (local dev, no Alembic migrations)
    if engine.dialect.name == "sqlite":
        from hookrelay.db.base import Base
        import hookrelay.db.models  # noqa: F401 (register ORM models)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite tables created (local mode)")

    app.state.db_engine = engine
    app.state.db_session_factory = create_session_factory(engine)
    app.state.http_client = httpx.AsyncClient()

    scheduler_task = None
    if settings.worker_enabled:
        from hookrelay.workers.scheduler import run_scheduler
        scheduler_task = asyncio.create_task(run_scheduler(app))
    else:
        logger.info("Webhook scheduler disabled; use /api/v1/webhooks/queue/process")
    app.state.scheduler_task = scheduler_task

    logger.info("hookrelay API started (db=%s)", engine.dialect.name)
    yield

    # Shutdown
    if scheduler_task is not None:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass

    from hookrelay.events.trigger import drain_dispatches
    await drain_dispatches()

    await app.state.http_client.aclose()
    await engine.dispose()
    logger.info("hookrelay API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="hookrelay API",
        version="1.0.0",
        description="Outbound webhook delivery: subscriptions, signed payloads, retrying delivery queue.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from hookrelay.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from hookrelay.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Prometheus metrics (internal endpoint)
    from prometheus_fastapi_instrumentator import Instrumentator
    Instrumentator(
        should_group_status_codes=True,
        should_respect_env_var=False,
        excluded_handlers=["/api/v1/health.*", "/metrics"],
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    # Import and mount routers
    from hookrelay.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
