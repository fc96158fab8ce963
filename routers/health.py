# routers/health.py

from fastapi import APIRouter

from core.config import settings
from core.supabase_client import ping_supabase

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/db
# Probes every collection table
# No auth required
# -----------------------------------------------------
@router.get("/db", summary="Document store health check")
def health_db():
    """
    Verifies Supabase connectivity.
    - Reports `not_configured` when URL + key are missing
    - Queries one row from each collection table
    - Returns per-table status (`degraded` if any table fails)
    """
    status = ping_supabase()
    return {
        "service": "Supabase",
        "status": status.get("status", "unknown"),
        "details": status,
    }


# -----------------------------------------------------
# GET /health/app
# -----------------------------------------------------
@router.get("/app", summary="App health check")
def health_app():
    """Lightweight liveness probe."""
    return {
        "service": settings.PROJECT_NAME,
        "environment": settings.ENV,
        "status": "ok",
    }
