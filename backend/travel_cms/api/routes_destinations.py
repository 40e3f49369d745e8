from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.common import invalidate_later
from travel_cms.api.schemas import DestinationCreate, DestinationUpdate, provided
from travel_cms.core import page_cache
from travel_cms.core.security import SessionUser, require_admin
from travel_cms.core.slugs import numbered_candidates, slugify
from travel_cms.db.database import get_db
from travel_cms.db.models import PublishStatus
from travel_cms.db.repositories import DestinationRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["destinations"])


@router.get("/destinations", response_model=List[Dict[str, Any]])
def list_destinations(
    status: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Destinations by name, each with the number of packages attached."""
    query = page_cache.query_key(status=status, region=region, category=category)
    cached = page_cache.get("/destinations", query)
    if cached is not None:
        return cached
    try:
        rows = DestinationRepository(db).filter_destinations(status=status, region=region, category=category)
        result = [dict(d.to_dict(), package_count=count or 0) for d, count in rows]
    except Exception as e:
        logger.error(f"List destinations failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch destinations")
    return page_cache.put("/destinations", result, query)


@router.get("/destinations/{key}", response_model=Dict[str, Any])
def get_destination(key: str, db: Session = Depends(get_db)):
    """Destination by id or slug, with its active packages (newest first)."""
    path = f"/destinations/{key}"
    cached = page_cache.get(path)
    if cached is not None:
        return cached
    try:
        repo = DestinationRepository(db)
        destination = repo.get_by_id_or_slug(key)
        if not destination:
            raise HTTPException(status_code=404, detail="Destination not found")
        result = destination.to_dict()
        result["packages"] = [p.to_dict() for p in repo.active_packages(destination.id)]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Fetch destination {key} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch destination")
    return page_cache.put(path, result)


@router.post("/destinations", status_code=201, response_model=Dict[str, Any])
def create_destination(
    body: DestinationCreate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not body.name or not body.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")

    data = provided(body)
    data.update(
        country=body.country or "India",
        region=body.region or "INDIA",
        category=body.category or "MOUNTAIN",
        images=body.images or [],
        highlights=body.highlights or [],
        featured=bool(body.featured),
        status=body.status or PublishStatus.ACTIVE.value,
    )
    try:
        destination = DestinationRepository(db).create(data, numbered_candidates(slugify(body.name, "destination")))
        result = destination.to_dict()
    except Exception as e:
        logger.error(f"Create destination failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create destination")

    invalidate_later(background_tasks, "/", "/destinations")
    return result


@router.put("/destinations/{destination_id}", response_model=Dict[str, Any])
def update_destination(
    destination_id: str,
    body: DestinationUpdate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = provided(body, exclude=("package_ids",))
    if "name" in data and not (data["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name cannot be empty")

    try:
        repo = DestinationRepository(db)
        destination = repo.get_by_id(destination_id)
        if not destination:
            raise HTTPException(status_code=404, detail="Destination not found")
        if body.package_ids is not None:
            repo.assign_packages(destination, body.package_ids)
        destination = repo.update(destination, data)
        result = destination.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update destination {destination_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update destination")

    # Package listings show the destination name
    invalidate_later(background_tasks, "/", "/destinations", f"/destinations/{result['slug']}", "/packages")
    return result


@router.delete("/destinations/{destination_id}")
def delete_destination(
    destination_id: str,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = DestinationRepository(db)
        destination = repo.get_by_id(destination_id)
        if not destination:
            raise HTTPException(status_code=404, detail="Destination not found")
        repo.delete(destination)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete destination {destination_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete destination")

    invalidate_later(background_tasks, "/", "/destinations", "/packages")
    return {"message": "Destination deleted successfully"}
