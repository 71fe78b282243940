"""
Health Check Router
Liveness and record store reachability
"""
from datetime import datetime

from fastapi import APIRouter, Depends

from finance_tracker.core.config import settings
from finance_tracker.db.base import RecordStore
from finance_tracker.routers.deps import get_store

router = APIRouter()


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/status")
def store_status(store: RecordStore = Depends(get_store)):
    """
    Check that every backing table answers a one-item scan.
    """
    tables = store.table_status()
    all_accessible = all(table["status"] == "accessible" for table in tables.values())
    return {
        "timestamp": datetime.utcnow().isoformat(),
        "tables": tables,
        "overall_status": "healthy" if all_accessible else "degraded",
    }
