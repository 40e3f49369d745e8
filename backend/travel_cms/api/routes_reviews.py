from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
import logging
import math

from travel_cms.api.common import invalidate_later
from travel_cms.api.schemas import ModerationUpdate, ReviewAction, ReviewCreate
from travel_cms.core.rate_limiting import SUBMISSION_LIMIT, limiter
from travel_cms.core.security import SessionUser, optional_session, require_admin
from travel_cms.db.database import get_db
from travel_cms.db.models import ApprovalStatus, PublishStatus, Review
from travel_cms.db.repositories import PackageRepository, ReviewRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])

REVIEW_STATUSES = {s.value for s in ApprovalStatus}


@router.get("/reviews", response_model=Dict[str, Any])
def list_reviews(
    package_id: Optional[str] = Query(None),
    include_all: bool = Query(False),
    status: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    page: Optional[int] = Query(None, ge=1),
    session: Optional[SessionUser] = Depends(optional_session),
    db: Session = Depends(get_db),
):
    """
    Approved reviews of one package. Admins may pass ``include_all=true``
    to see every review (optionally filtered by status) across packages.
    """
    moderating = include_all and session is not None and session.is_admin
    if not moderating and not package_id:
        raise HTTPException(status_code=400, detail="Package ID is required")

    try:
        rows, total = ReviewRepository(db).page(
            package_id=package_id,
            status=status if moderating else ApprovalStatus.APPROVED.value,
            limit=limit,
            page=page,
        )
        return {
            "reviews": [r.to_dict() for r in rows],
            "total": total,
            "page": page or 1,
            "total_pages": math.ceil(total / limit),
        }
    except Exception as e:
        logger.error(f"List reviews failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch reviews")


@router.post("/reviews", status_code=201, response_model=Dict[str, Any])
@limiter.limit(SUBMISSION_LIMIT)
def create_review(request: Request, body: ReviewCreate, db: Session = Depends(get_db)):
    if not body.package_id or not (body.name or "").strip() or not (body.comment or "").strip() or body.rating is None:
        raise HTTPException(status_code=400, detail="Package, name, rating and comment are required")
    if not 1 <= body.rating <= 5:
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")

    try:
        package = PackageRepository(db).get_by_id(body.package_id)
        if not package or package.status != PublishStatus.ACTIVE.value:
            raise HTTPException(status_code=404, detail="Package not found")
        review = ReviewRepository(db).add(
            Review(
                package_id=package.id,
                name=body.name.strip(),
                email=body.email,
                location=body.location,
                rating=body.rating,
                title=body.title,
                comment=body.comment.strip(),
                images=body.images or [],
                status=ApprovalStatus.PENDING.value,
            )
        )
        result = review.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create review failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit review")

    return {"success": True, "message": "Review submitted for approval", "review": result}


@router.put("/reviews", response_model=Dict[str, Any])
def moderate_review(
    body: ModerationUpdate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not body.id:
        raise HTTPException(status_code=400, detail="Review ID is required")
    if body.status is not None and body.status not in REVIEW_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    data: Dict[str, Any] = {}
    if body.status is not None:
        data["status"] = body.status
    if body.verified is not None:
        data["verified"] = body.verified

    try:
        repo = ReviewRepository(db)
        review = repo.get_by_id(body.id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        review = repo.update(review, data)
        PackageRepository(db).refresh_review_stats(review.package_id)
        db.refresh(review)
        result = review.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Moderate review {body.id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update review")

    invalidate_later(background_tasks, "/", "/packages")
    return result


@router.patch("/reviews", response_model=Dict[str, Any])
def review_action(body: ReviewAction, db: Session = Depends(get_db)):
    if not body.id or body.action != "helpful":
        raise HTTPException(status_code=400, detail="Invalid request")
    try:
        repo = ReviewRepository(db)
        review = repo.get_by_id(body.id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        return repo.increment_helpful(review).to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Review action on {body.id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update review")


@router.delete("/reviews")
def delete_review(
    background_tasks: BackgroundTasks,
    id: Optional[str] = Query(None),
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not id:
        raise HTTPException(status_code=400, detail="Review ID is required")
    try:
        repo = ReviewRepository(db)
        review = repo.get_by_id(id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")
        package_id = review.package_id
        repo.delete(review)
        PackageRepository(db).refresh_review_stats(package_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete review {id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete review")

    invalidate_later(background_tasks, "/", "/packages")
    return {"message": "Review deleted successfully"}
