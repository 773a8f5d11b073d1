"""Wealthlink API - FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map WealthlinkError -> structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, event bus and reminder loop initialized in the lifespan

Design Decisions:
    - Lifespan over @app.on_event: cleanup of the reminder task and engine in one place
    - create_all on startup for local/sqlite runs; production schema comes from alembic
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wealthlink.api.error_handlers import register_error_handlers
from wealthlink.api.routes import (
    account, admin, auth, events, health, payments, withdrawals,
)
from wealthlink.config import get_settings
from wealthlink.infrastructure.database import init_db
from wealthlink.infrastructure.event_bus import init_event_bus
from wealthlink.infrastructure.observability import setup_logging
from wealthlink.services.reminder_service import reminder_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_url.startswith("sqlite"):
        await manager.create_all()
    bus = init_event_bus(settings.event_queue_size)

    reminder_task = None
    if settings.reminders_enabled:
        reminder_task = asyncio.create_task(reminder_loop(
            manager.session, bus, settings.reminder_interval_seconds,
            settings.seed_app_config(),
        ))
    logger.info("Wealthlink API started")
    yield
    logger.info("Wealthlink API shutting down")
    if reminder_task:
        reminder_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reminder_task
    await manager.dispose()


app = FastAPI(title="Wealthlink API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(account.router)
app.include_router(payments.router)
app.include_router(withdrawals.router)
app.include_router(admin.router)
app.include_router(events.router)

register_error_handlers(app)
