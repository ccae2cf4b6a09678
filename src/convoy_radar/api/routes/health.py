"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...db.supabase import get_supabase_client
from ...services.monitoring import registry as monitor_registry

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check that the convoy backend is configured and answering."""
    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set CVR_SUPABASE_URL and CVR_SUPABASE_KEY environment variables.",
        }

    try:
        supabase.table("convoys").select("id").limit(1).execute()
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {"configured": True, "connected": True, "message": "Database connected."}


@router.get("/health/monitors", status_code=status.HTTP_200_OK)
def list_monitors() -> dict:
    businesses = monitor_registry.get_registry().business_ids()
    return {"count": len(businesses), "businesses": businesses}
