# app/api/health.py
"""
Health check endpoints.
"""
from datetime import datetime, timezone
from fastapi import APIRouter

from app.sandbox import get_session_store

router = APIRouter(tags=["Health"])


@router.get("/healthz")
async def healthz():
    """Simple health check."""
    return {"ok": True, "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/api/health")
async def api_health():
    """API health check, with the number of cached sandboxes."""
    return {
        "status": "healthy",
        "active_sandboxes": get_session_store().active_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
