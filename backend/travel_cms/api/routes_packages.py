from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.common import invalidate_later
from travel_cms.api.schemas import PackageCreate, PackageUpdate, provided
from travel_cms.core import page_cache
from travel_cms.core.security import SessionUser, require_admin
from travel_cms.core.slugs import copy_candidates, numbered_candidates, slugify
from travel_cms.db.database import get_db
from travel_cms.db.models import Package, PublishStatus
from travel_cms.db.repositories import PackageRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["packages"])


def _package_summary(package: Package) -> Dict[str, Any]:
    """List view: resolved destination name plus a destination stub."""
    data = package.to_dict()
    dest = package.destination
    data["destination_name"] = (dest.name if dest else None) or package.destination_name or "Unknown"
    data["destination"] = {"id": dest.id, "name": dest.name, "slug": dest.slug} if dest else None
    return data


def _package_detail(package: Package) -> Dict[str, Any]:
    data = package.to_dict()
    data["destination"] = package.destination.to_dict() if package.destination else None
    data["accommodations"] = [a.to_dict() for a in package.accommodations]
    return data


# ============================================================================
# PUBLIC READS
# ============================================================================

@router.get("/packages", response_model=List[Dict[str, Any]])
def list_packages(
    status: Optional[str] = Query(None, description="ACTIVE or INACTIVE"),
    type: Optional[str] = Query(None, description="Package type"),
    featured: Optional[bool] = Query(None, description="Only featured packages"),
    destination_id: Optional[str] = Query(None),
    destination: Optional[str] = Query(None, description="Substring of the destination name"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Number of results"),
    db: Session = Depends(get_db),
):
    """
    List packages, featured first then newest.
    All filters are optional.
    """
    query = page_cache.query_key(
        status=status,
        type=type,
        featured=featured,
        destination_id=destination_id,
        destination=destination,
        min_price=min_price,
        max_price=max_price,
        limit=limit,
    )
    cached = page_cache.get("/packages", query)
    if cached is not None:
        return cached
    try:
        packages = PackageRepository(db).filter_packages(
            status=status,
            package_type=type,
            featured=featured,
            destination_id=destination_id,
            destination=destination,
            min_price=min_price,
            max_price=max_price,
            limit=limit,
        )
        result = [_package_summary(p) for p in packages]
    except Exception as e:
        logger.error(f"List packages failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch packages")
    return page_cache.put("/packages", result, query)


@router.get("/packages/{key}", response_model=Dict[str, Any])
def get_package(key: str, db: Session = Depends(get_db)):
    """Get a package by id or slug."""
    path = f"/packages/{key}"
    cached = page_cache.get(path)
    if cached is not None:
        return cached
    try:
        package = PackageRepository(db).get_detail(key)
        if not package:
            raise HTTPException(status_code=404, detail="Package not found")
        result = _package_detail(package)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Fetch package {key} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch package")
    return page_cache.put(path, result)


# ============================================================================
# ADMIN WRITES
# ============================================================================

@router.post("/packages", status_code=201, response_model=Dict[str, Any])
def create_package(
    body: PackageCreate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not body.name or not body.name.strip() or body.price is None:
        raise HTTPException(status_code=400, detail="Name and price are required")

    data = provided(body, exclude=("accommodations",))
    data.update(
        destination_name=body.destination_name or body.location,
        country=body.country or "India",
        images=body.images or [],
        highlights=body.highlights or [],
        inclusions=body.inclusions or [],
        exclusions=body.exclusions or [],
        difficulty=body.difficulty or "EASY",
        type=body.type or "PREMIUM",
        featured=bool(body.featured),
        status=body.status or PublishStatus.ACTIVE.value,
    )
    accommodations = [a.model_dump() for a in body.accommodations or []]

    try:
        repo = PackageRepository(db)
        package = repo.create(data, numbered_candidates(slugify(body.name, "package")), accommodations)
        result = package.to_dict()
    except Exception as e:
        logger.error(f"Create package failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create package")

    logger.info(f"Package '{result['slug']}' created by {admin.email}")
    invalidate_later(background_tasks, "/", "/packages", "/destinations")
    return result


@router.put("/packages/{package_id}", response_model=Dict[str, Any])
def update_package(
    package_id: str,
    body: PackageUpdate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = provided(body)
    if "name" in data and not (data["name"] or "").strip():
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    if "price" in data and data["price"] is None:
        raise HTTPException(status_code=400, detail="Price cannot be empty")

    try:
        repo = PackageRepository(db)
        package = repo.get_by_id(package_id)
        if not package:
            raise HTTPException(status_code=404, detail="Package not found")
        package = repo.update(package, data)
        result = package.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update package {package_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update package")

    invalidate_later(background_tasks, "/", "/packages", "/destinations")
    return result


@router.delete("/packages/{package_id}")
def delete_package(
    package_id: str,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = PackageRepository(db)
        package = repo.get_by_id(package_id)
        if not package:
            raise HTTPException(status_code=404, detail="Package not found")
        repo.delete(package)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete package {package_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete package")

    logger.info(f"Package {package_id} deleted by {admin.email}")
    invalidate_later(background_tasks, "/", "/packages", "/destinations")
    return {"message": "Package deleted successfully"}


@router.post("/packages/{package_id}/duplicate", status_code=201, response_model=Dict[str, Any])
def duplicate_package(
    package_id: str,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Copy a package as an unpublished draft.
    Slug probe order: <slug>-copy, <slug>-copy-2, <slug>-copy-3, ...
    """
    try:
        repo = PackageRepository(db)
        source = repo.get_by_id(package_id)
        if not source:
            raise HTTPException(status_code=404, detail="Package not found")
        clone = repo.duplicate(source, copy_candidates(source.slug))
        result = _package_detail(clone)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Duplicate package {package_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to duplicate package")

    logger.info(f"Package {package_id} duplicated as '{result['slug']}'")
    invalidate_later(background_tasks, "/", "/packages", "/destinations")
    return result
