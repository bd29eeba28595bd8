"""FastAPI application entry point."""

import asyncio
import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from planner.db.database import close_database, init_database
from planner.services.action_gc import ACTION_GC_INTERVAL_SECONDS, sweep_actions_periodically

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)

# Background task handle
_action_gc_task: asyncio.Task | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    global _action_gc_task

    # Startup
    db_path = os.getenv("DATABASE_PATH", "./data/planner.db")
    await init_database(db_path)
    logger.info(f"Opened database {db_path}")

    # Start background action GC (runs once now, then every interval)
    _action_gc_task = asyncio.create_task(
        sweep_actions_periodically(ACTION_GC_INTERVAL_SECONDS)
    )
    logger.info(
        f"Started action GC background task (every {ACTION_GC_INTERVAL_SECONDS}s)"
    )

    yield

    # Shutdown
    if _action_gc_task:
        _action_gc_task.cancel()
        try:
            await _action_gc_task
        except asyncio.CancelledError:
            pass
        _action_gc_task = None
        logger.info("Stopped action GC background task")

    await close_database()


app = FastAPI(
    title="Maintenance Planner",
    description="Recurring maintenance checklists: plans, executions and backups",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware - allow any localhost port for a separately served frontend
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^http://localhost(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers after app is created to avoid circular imports
from planner.api import actions, backup, executions, plans  # noqa: E402

app.include_router(plans.router, prefix="/api/v1", tags=["plans"])
app.include_router(executions.router, prefix="/api/v1", tags=["executions"])
app.include_router(actions.router, prefix="/api/v1", tags=["actions"])
app.include_router(backup.router, prefix="/api/v1", tags=["backup"])
