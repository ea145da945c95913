"""FastAPI application entry point."""

import logging
import os
import threading
from contextlib import asynccontextmanager

import sqlalchemy
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from autoblog.config import settings
from autoblog.routes import jobs, posts, websites

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Worker thread management
worker_thread = None
worker_stop_event = threading.Event()


def run_worker_loop():
    """Run the worker loop in a background thread."""
    from autoblog.worker import worker_loop

    logger.info("Starting background worker thread")
    worker_loop(worker_stop_event)


def run_migrations():
    """Apply alembic migrations unless the schema already exists."""
    from autoblog.database import engine

    if sqlalchemy.inspect(engine).has_table("generation_jobs"):
        logger.info("Database tables already exist, skipping migrations")
        return

    logger.info("Running database migrations...")
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(__file__)), "alembic.ini"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed successfully")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the background worker on startup and stop it on shutdown."""
    global worker_thread
    logger.info("Starting application...")

    try:
        run_migrations()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.error(f"Startup database check/migration error: {e}")
        logger.info("Continuing startup - assuming database is ready")

    if settings.RUN_BACKGROUND_WORKER:
        worker_thread = threading.Thread(target=run_worker_loop, daemon=True)
        worker_thread.start()
        logger.info("Background worker thread started")
    else:
        logger.info("Background worker disabled")

    yield

    logger.info("Shutting down application...")
    worker_stop_event.set()

    if worker_thread and worker_thread.is_alive():
        worker_thread.join(timeout=10)
        logger.info("Background worker thread stopped")


# Create FastAPI app
app = FastAPI(
    title="Autoblog",
    description="AI blog article generation with a database-backed job queue",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(websites.router)
app.include_router(jobs.router)
app.include_router(posts.router)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "Autoblog",
        "version": "0.1.0",
        "status": "running",
    }
