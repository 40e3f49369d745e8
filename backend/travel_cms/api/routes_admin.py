from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Callable, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.core.security import SessionUser, require_admin
from travel_cms.db.database import get_session_factory
from travel_cms.services.aggregation import dashboard_stats, global_search

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=Dict[str, Any])
async def get_stats(
    admin: SessionUser = Depends(require_admin),
    factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Dashboard counters, the five latest enquiries and a six-month histogram."""
    try:
        return await dashboard_stats(factory)
    except Exception as e:
        logger.error(f"Dashboard stats failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch stats")


@router.get("/search", response_model=Dict[str, Any])
async def search(
    q: str = Query("", description="At least two characters"),
    admin: SessionUser = Depends(require_admin),
    factory: Callable[[], Session] = Depends(get_session_factory),
):
    try:
        return await global_search(factory, q)
    except Exception as e:
        logger.error(f"Admin search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Search failed")
