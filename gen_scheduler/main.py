"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gen_scheduler.api import health, masters, scheduler
from gen_scheduler.config import get_settings
from gen_scheduler.db.session import init_db

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    logger.info("Starting Generation Scheduler...")

    # Initialize database
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    logger.info(
        f"Generation Scheduler started (max_concurrent={settings.max_concurrent}, "
        f"stuck_threshold={settings.stuck_threshold_minutes}m)"
    )

    yield

    # Shutdown
    logger.info("Shutting down Generation Scheduler...")


# Create FastAPI app
app = FastAPI(
    title="Generation Scheduler",
    description="""
## Document Generation Scheduler

Advances document generation campaigns (masters) under a global concurrency cap.

### Scheduler pass
Each pass:
1. Counts masters in `sedang_jalan` and computes free slots
2. Fills the slots from three pools, in priority order:
   - `belum_siap` masters are **synced** (chapters prepared one by one)
   - `belum_mulai` / `menunggu` masters are handed to the **orchestrator**
   - `sedang_jalan` masters stale beyond the stuck threshold are re-delegated
3. Runs every selected master concurrently and returns a summary

Passes are triggered by the Celery beat schedule or by `POST /v1/scheduler/run`.

### Documents
`prota` and `prosem` per master; `rpm` and `lkpd` per chapter (bab).
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# Include routers
app.include_router(health.router)
app.include_router(scheduler.router)
app.include_router(masters.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with service info."""
    return {
        "service": "Generation Scheduler",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gen_scheduler.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
