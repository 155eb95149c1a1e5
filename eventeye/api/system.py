"""
System Router - Health checks and monitoring
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends

from eventeye.config import settings
from eventeye.dependencies import get_store
from eventeye.store import KeyValueStore

router = APIRouter()


@router.get("/health")
def health_check(store: KeyValueStore = Depends(get_store)):
    """
    Health check endpoint returning the status of the key-value store.
    """
    store_status = "healthy" if store.ping() else "unhealthy"

    return {
        "status": "ok" if store_status == "healthy" else "degraded",
        "store": store_status,
        "backend": settings.STORE_BACKEND,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
