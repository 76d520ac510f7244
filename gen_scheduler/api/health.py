"""Health check and system info routes."""

from fastapi import APIRouter
import redis
from sqlalchemy import text

from gen_scheduler.config import get_settings
from gen_scheduler.schemas.schemas import HealthResponse

router = APIRouter(tags=["System"])

settings = get_settings()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the service and its dependencies.",
)
async def health_check():
    """
    Health check endpoint.

    Returns the status of:
    - API server
    - Database connection
    - Redis connection (Celery broker)
    """
    # Check Redis
    redis_status = "ok"
    try:
        r = redis.from_url(settings.redis_url, socket_connect_timeout=1)
        r.ping()
    except Exception:
        redis_status = "error"

    # Check database
    db_status = "ok"
    try:
        from gen_scheduler.db.session import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    overall_status = "healthy"
    if any(s == "error" for s in [redis_status, db_status]):
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        version="1.0.0",
        database=db_status,
        redis=redis_status,
    )


@router.get(
    "/v1/info",
    summary="Service information",
    description="Get general information about the service and its scheduler settings.",
)
async def service_info():
    """Get service information."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "environment": settings.app_env,
        "max_concurrent": settings.max_concurrent,
        "stuck_threshold_minutes": settings.stuck_threshold_minutes,
        "scheduler_interval_seconds": settings.scheduler_interval_seconds,
        "document_kinds": ["prota", "prosem", "rpm", "lkpd"],
        "documentation": "/docs",
        "redoc": "/redoc",
    }
