"""
Testimonials: public listing of approved stories, public submission that
always lands in moderation, and admin moderation.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
import logging
import math

from travel_cms.api.common import invalidate_later
from travel_cms.api.schemas import ModerationUpdate, TestimonialCreate
from travel_cms.core import page_cache
from travel_cms.core.rate_limiting import SUBMISSION_LIMIT, limiter
from travel_cms.core.security import SessionUser, optional_session, require_admin
from travel_cms.db.database import get_db
from travel_cms.db.models import ApprovalStatus, Testimonial
from travel_cms.db.repositories import PackageRepository, TestimonialRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["testimonials"])

MODERATION_STATUSES = {s.value for s in ApprovalStatus}

# Older clients filter with the package vocabulary
LEGACY_STATUS_ALIASES = {"ACTIVE": ApprovalStatus.APPROVED.value}


def _visible_status(include_all: bool, status: Optional[str], approval_status: Optional[str]) -> Optional[str]:
    """
    Status filter for a listing call. Without ``include_all`` the answer is
    always APPROVED whatever else was asked for.
    """
    if not include_all:
        return ApprovalStatus.APPROVED.value
    wanted = approval_status or status
    if not wanted:
        return None
    return LEGACY_STATUS_ALIASES.get(wanted, wanted)


@router.get("/testimonials", response_model=Dict[str, Any])
def list_testimonials(
    include_all: bool = Query(False),
    status: Optional[str] = Query(None),
    approval_status: Optional[str] = Query(None),
    featured: Optional[bool] = Query(None),
    sort: Optional[str] = Query(None, description="'newest' for plain recency"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    page: Optional[int] = Query(None, ge=1),
    session: Optional[SessionUser] = Depends(optional_session),
    db: Session = Depends(get_db),
):
    """
    Anonymous and non-admin callers only ever see APPROVED testimonials;
    ``include_all`` and the status filters apply to admin sessions alone.
    """
    moderating = include_all and session is not None and session.is_admin
    visible = _visible_status(moderating, status, approval_status)
    cacheable = not moderating
    query = page_cache.query_key(featured=featured, sort=sort, limit=limit, page=page)
    if cacheable:
        cached = page_cache.get("/testimonials", query)
        if cached is not None:
            return cached
    try:
        rows, total = TestimonialRepository(db).page(
            status=visible,
            featured=featured,
            newest_first=sort == "newest",
            limit=limit,
            page=page,
        )
        result = {
            "testimonials": [t.to_dict() for t in rows],
            "total": total,
            "page": page or 1,
            "total_pages": math.ceil(total / limit) if limit else 1,
        }
    except Exception as e:
        logger.error(f"List testimonials failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch testimonials")
    if cacheable:
        page_cache.put("/testimonials", result, query)
    return result


@router.post("/testimonials", status_code=201, response_model=Dict[str, Any])
@limiter.limit(SUBMISSION_LIMIT)
def create_testimonial(
    request: Request,
    body: TestimonialCreate,
    background_tasks: BackgroundTasks,
    session: Optional[SessionUser] = Depends(optional_session),
    db: Session = Depends(get_db),
):
    """
    Public callers always create PENDING, non-featured testimonials; only an
    admin session may choose the status or feature one. The ``is_admin``
    body flag carries no authority.
    """
    if not (body.name or "").strip() or not (body.comment or "").strip():
        raise HTTPException(status_code=400, detail="Name and comment are required")

    is_admin = session is not None and session.is_admin
    if is_admin:
        status = body.status or ApprovalStatus.APPROVED.value
        if status not in MODERATION_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")
        featured = bool(body.featured)
    else:
        status = ApprovalStatus.PENDING.value
        featured = False

    try:
        package = PackageRepository(db).get_by_id(body.package_id) if body.package_id else None
        testimonial = TestimonialRepository(db).add(
            Testimonial(
                name=body.name.strip(),
                email=body.email,
                location=body.location or "",
                rating=body.rating or 5,
                comment=body.comment.strip(),
                image=body.image,
                package_id=package.id if package else None,
                trip_date=body.trip_date,
                featured=featured,
                status=status,
            )
        )
        result = testimonial.to_dict()
    except Exception as e:
        logger.error(f"Create testimonial failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit testimonial")

    logger.info(f"Testimonial {result['id']} created with status {status}")
    if status == ApprovalStatus.APPROVED.value:
        invalidate_later(background_tasks, "/", "/testimonials")
    return result


@router.put("/testimonials", response_model=Dict[str, Any])
def moderate_testimonial(
    body: ModerationUpdate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not body.id:
        raise HTTPException(status_code=400, detail="Testimonial id is required")
    if body.status is not None and body.status not in MODERATION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    data: Dict[str, Any] = {}
    if body.status is not None:
        data["status"] = body.status
    if body.featured is not None:
        data["featured"] = body.featured

    try:
        repo = TestimonialRepository(db)
        testimonial = repo.get_by_id(body.id)
        if not testimonial:
            raise HTTPException(status_code=404, detail="Testimonial not found")
        result = repo.update(testimonial, data).to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Moderate testimonial {body.id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update testimonial")

    invalidate_later(background_tasks, "/", "/testimonials")
    return result


@router.delete("/testimonials/{testimonial_id}")
def delete_testimonial(
    testimonial_id: str,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = TestimonialRepository(db)
        testimonial = repo.get_by_id(testimonial_id)
        if not testimonial:
            raise HTTPException(status_code=404, detail="Testimonial not found")
        repo.delete(testimonial)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete testimonial {testimonial_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete testimonial")

    invalidate_later(background_tasks, "/", "/testimonials")
    return {"message": "Testimonial deleted successfully"}
