# ============================================================================
# RUNTIME FLEET ENGINE - MAIN APPLICATION
# ============================================================================
# STATUS: Core - FastAPI application entry point
# PURPOSE: Main application with the fleet engine running in the background
# CREATED: 12 OCT 2026
# ============================================================================
"""
Runtime Fleet Engine Main Application

FastAPI application that:
1. Provides the HTTP API for fleet campaigns
2. Runs the operation and orchestration queues in the background
3. Manages the database pool and the notification client

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __version__ import __version__, BUILD_DATE
from api import router, set_services
from core.config import get_defaults
from core.logging import configure_logging, get_logger
from health import NotificationCheck, QueueCheck, StorageCheck, get_registry, health_router
from notification import create_bundle_builder
from process.pipeline import load_pipeline_file
from repositories import close_pool, create_memory_storage, create_postgres_storage, init_pool
from repositories.schema import deploy_schema
from services import FleetEngine

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__)

# Global instance
_engine: Optional[FleetEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes the engine on startup, drains it on shutdown.
    """
    global _engine

    logger.info(f"Starting Runtime Fleet Engine v{__version__} (Build {BUILD_DATE})")
    defaults = get_defaults()

    if defaults.storage.use_database:
        pool = await init_pool(connection_string=defaults.storage.database_url)
        logger.info("Database pool initialized")

        # Optional: Bootstrap schema on startup (for development)
        if os.environ.get("AUTO_BOOTSTRAP_SCHEMA", "").lower() == "true":
            logger.info("Auto-bootstrap enabled, deploying schema...")
            await deploy_schema(pool, defaults.storage.schema)

        storage = create_postgres_storage(pool, defaults.storage.schema)
    else:
        logger.warning("DATABASE_URL not set, using in-memory storage (nothing survives a restart)")
        storage = create_memory_storage()

    pipelines = load_pipeline_file(defaults.storage.pipelines_path)

    bundle_builder = create_bundle_builder(defaults.notification)

    _engine = FleetEngine(storage, defaults, bundle_builder, pipelines)
    await _engine.start(reprocess=defaults.storage.reprocess_on_startup)

    # Set services for API routes
    set_services(
        orchestration_service=_engine.orchestration_service,
        metrics=_engine.metrics,
        queues=_engine.queues,
    )

    # Initialize health checks
    registry = get_registry()
    registry.clear()
    registry.register(StorageCheck(storage))
    registry.register(QueueCheck(_engine.queues))
    registry.register(NotificationCheck(bundle_builder))
    logger.info(f"Health checks initialized ({len(registry)} checks registered)")

    yield

    # Shutdown
    logger.info("Shutting down Runtime Fleet Engine...")

    await _engine.stop()
    await bundle_builder.close()
    if defaults.storage.use_database:
        await close_pool()

    logger.info("Runtime Fleet Engine stopped")


# Create FastAPI app
app = FastAPI(
    title="Runtime Fleet Engine",
    description="Staged operations and fleet-wide orchestrations for managed runtimes",
    version=__version__,
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

# Include health check routes (no prefix - /livez, /readyz, /health)
app.include_router(health_router)

# Include API routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Runtime Fleet Engine",
        "version": __version__,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
