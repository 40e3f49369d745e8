"""
Package enquiries ("enquire about this package" form).

Registered ahead of the packages router so ``/packages/enquiry`` is not
captured by ``/packages/{key}``.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.common import is_valid_email, to_int
from travel_cms.api.schemas import EnquiryCreate, InquiryUpdate, provided
from travel_cms.core.rate_limiting import SUBMISSION_LIMIT, limiter
from travel_cms.core.security import SessionUser, require_admin
from travel_cms.db.database import get_db
from travel_cms.db.models import InquiryStatus, PackageEnquiry
from travel_cms.db.repositories import PackageEnquiryRepository, PackageRepository
from travel_cms.services.notifications import PACKAGE_ENQUIRY, InquiryNotification, dispatch_inquiry_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["enquiries"])

INQUIRY_STATUSES = {s.value for s in InquiryStatus}


def _parse_travel_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid travel date")
    # Stored as naive UTC like every other timestamp
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _with_package(enquiry: PackageEnquiry) -> Dict[str, Any]:
    data = enquiry.to_dict()
    package = enquiry.package
    data["package"] = {"id": package.id, "name": package.name, "slug": package.slug} if package else None
    return data


@router.post("/packages/enquiry", status_code=201)
@limiter.limit(SUBMISSION_LIMIT)
def submit_enquiry(
    request: Request,
    body: EnquiryCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    name = (body.name or "").strip()
    email = (body.email or "").strip()
    phone = (body.phone or "").strip()
    if not name or not email or not phone:
        raise HTTPException(status_code=400, detail="Name, email and phone are required")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please provide a valid email address")

    travel_date = _parse_travel_date(body.travel_date)
    adults = to_int(body.adults, 1)
    children = to_int(body.children, 0)
    rooms = to_int(body.rooms, 1)

    try:
        package = PackageRepository(db).get_by_id(body.package_id) if body.package_id else None
        package_name = body.package_name or (package.name if package else None)
        enquiry = PackageEnquiryRepository(db).add(
            PackageEnquiry(
                name=name,
                email=email,
                phone=phone,
                package_id=package.id if package else None,
                package_name=package_name,
                travel_date=travel_date,
                travel_time=body.travel_time,
                adults=adults,
                children=children,
                rooms=rooms,
                message=body.message,
                status=InquiryStatus.NEW.value,
            )
        )
        enquiry_id = enquiry.id
    except Exception as e:
        logger.error(f"Save package enquiry failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit enquiry. Please try again.")

    logger.info(f"Package enquiry {enquiry_id} received for {package_name or 'unknown package'}")
    background_tasks.add_task(
        dispatch_inquiry_email,
        InquiryNotification(
            name=name,
            email=email,
            type=PACKAGE_ENQUIRY,
            phone=phone,
            message=body.message,
            package_name=package_name,
            travel_date=body.travel_date,
            travel_time=body.travel_time,
            adults=adults,
            children=children,
            rooms=rooms,
        ),
    )
    return {
        "success": True,
        "message": "Thank you for your enquiry! We will contact you shortly.",
        "id": enquiry_id,
    }


@router.get("/packages/enquiry", response_model=List[Dict[str, Any]])
def list_enquiries(
    status: Optional[str] = Query(None),
    package_id: Optional[str] = Query(None),
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        rows = PackageEnquiryRepository(db).filter_enquiries(status=status, package_id=package_id)
        return [_with_package(e) for e in rows]
    except Exception as e:
        logger.error(f"List package enquiries failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch enquiries")


@router.put("/packages/enquiry/{enquiry_id}", response_model=Dict[str, Any])
def update_enquiry(
    enquiry_id: str,
    body: InquiryUpdate,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if body.status is not None and body.status not in INQUIRY_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    try:
        repo = PackageEnquiryRepository(db)
        enquiry = repo.get_by_id(enquiry_id)
        if not enquiry:
            raise HTTPException(status_code=404, detail="Enquiry not found")
        return _with_package(repo.update(enquiry, provided(body)))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update package enquiry {enquiry_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update enquiry")


@router.delete("/packages/enquiry/{enquiry_id}")
def delete_enquiry(
    enquiry_id: str,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = PackageEnquiryRepository(db)
        enquiry = repo.get_by_id(enquiry_id)
        if not enquiry:
            raise HTTPException(status_code=404, detail="Enquiry not found")
        repo.delete(enquiry)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete package enquiry {enquiry_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete enquiry")
    return {"message": "Enquiry deleted successfully"}
