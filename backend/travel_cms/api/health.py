"""
Health probes for the load balancer and container orchestrator.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import func, text
from datetime import datetime
import time
import logging

from travel_cms.db.database import get_db
from travel_cms.db.models import Package
from travel_cms.core.rate_limiting import limiter, HEALTH_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_STARTUP_TIME = time.time()


@router.get("/")
@limiter.limit(HEALTH_LIMIT)
def health_check(request: Request, db: Session = Depends(get_db)):
    """Database connectivity, package count and uptime."""
    health = {
        "status": "healthy",
        "database": "unavailable",
        "packages": 0,
        "uptime_seconds": int(time.time() - _STARTUP_TIME),
        "timestamp": datetime.utcnow().isoformat(),
    }
    try:
        health["packages"] = db.query(func.count(Package.id)).scalar() or 0
        health["database"] = "available"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health["status"] = "degraded"
    return health


@router.get("/ready")
@limiter.limit(HEALTH_LIMIT)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"ready": True, "timestamp": datetime.utcnow().isoformat()}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return {"ready": False, "timestamp": datetime.utcnow().isoformat()}


@router.get("/live")
def liveness_check():
    return {"alive": True, "uptime_seconds": int(time.time() - _STARTUP_TIME), "timestamp": datetime.utcnow().isoformat()}
