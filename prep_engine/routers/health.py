"""
Health Check Endpoints

Provides health check endpoints for monitoring and orchestration.

Endpoints:
- GET /api/health - Basic health check
- GET /api/health/detailed - Detailed health with dependency checks
- GET /api/health/ready - Readiness probe for orchestration systems
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from prep_engine.config import settings
from prep_engine.services.learning import SqlAlchemyProgressStore

router = APIRouter(prefix="/api/health", tags=["health"])


async def _check_store(request: Request) -> dict:
    """Probe the progress store the session registry writes to."""
    store = request.app.state.session_registry.store
    if not isinstance(store, SqlAlchemyProgressStore):
        return {"status": "healthy", "backend": type(store).__name__}

    async with store.session_maker() as db:
        await db.execute(text("SELECT 1"))
    return {"status": "healthy", "backend": "postgres"}


@router.get("")
async def health_check():
    """
    Basic health check.

    Returns a simple status response indicating the API is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@router.get("/detailed")
async def detailed_health_check(request: Request):
    """
    Detailed health check with dependency status.

    Checks connectivity to the progress store and reports how many
    sessions are held in memory.
    """
    health = {"status": "healthy", "service": settings.APP_NAME, "dependencies": {}}

    try:
        health["dependencies"]["progress_store"] = await _check_store(request)
    except Exception as e:
        health["dependencies"]["progress_store"] = {"status": "unhealthy", "error": str(e)}
        health["status"] = "degraded"

    health["active_sessions"] = len(request.app.state.session_registry)
    return health


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness probe for orchestration systems.

    Returns ready only if the progress store answers.
    """
    try:
        await _check_store(request)
        return {"ready": True}
    except Exception as e:
        return {"ready": False, "error": str(e)}
