from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.common import is_valid_email
from travel_cms.api.schemas import ContactCreate, InquiryUpdate, provided
from travel_cms.core.rate_limiting import SUBMISSION_LIMIT, limiter
from travel_cms.core.security import SessionUser, require_admin
from travel_cms.db.database import get_db
from travel_cms.db.models import ContactInquiry, InquiryStatus
from travel_cms.db.repositories import ContactInquiryRepository
from travel_cms.services.notifications import CONTACT, InquiryNotification, dispatch_inquiry_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])

INQUIRY_STATUSES = {s.value for s in InquiryStatus}


@router.post("/contact", status_code=201)
@limiter.limit(SUBMISSION_LIMIT)
def submit_contact(
    request: Request,
    body: ContactCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Store a contact / consultation request and notify the agency.

    The email goes out after the response; a mail failure never turns a
    stored inquiry into an error.
    """
    name = (body.name or "").strip()
    email = (body.email or "").strip()
    message = (body.message or "").strip()
    if not name or not email or not message:
        raise HTTPException(status_code=400, detail="Name, email and message are required")
    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Please provide a valid email address")

    inquiry_type = body.type or CONTACT
    try:
        inquiry = ContactInquiryRepository(db).add(
            ContactInquiry(
                name=name,
                email=email,
                phone=body.phone,
                subject=body.subject or "Travel Consultation",
                message=message,
                type=inquiry_type,
                destination=body.destination,
                travel_date=body.travel_date,
                travelers=body.travelers,
                budget=body.budget,
                hotel_type=body.hotel_type,
                group_size=body.group_size,
                special_requirements=body.special_requirements,
                status=InquiryStatus.NEW.value,
            )
        )
        inquiry_id = inquiry.id
    except Exception as e:
        logger.error(f"Save contact inquiry failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit inquiry. Please try again.")

    logger.info(f"Contact inquiry {inquiry_id} received ({inquiry_type})")
    background_tasks.add_task(
        dispatch_inquiry_email,
        InquiryNotification(
            name=name,
            email=email,
            type=inquiry_type,
            phone=body.phone,
            message=message,
            destination=body.destination,
            travel_date=body.travel_date,
            hotel_type=body.hotel_type,
            group_size=body.group_size or body.travelers,
            budget=body.budget,
            special_requirements=body.special_requirements,
        ),
    )
    return {
        "success": True,
        "message": "Thank you for your inquiry! We will get back to you soon.",
        "id": inquiry_id,
    }


@router.get("/contact", response_model=List[Dict[str, Any]])
def list_contacts(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        rows = ContactInquiryRepository(db).filter_contacts(status=status, inquiry_type=type, limit=limit)
        return [c.to_dict() for c in rows]
    except Exception as e:
        logger.error(f"List contact inquiries failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch inquiries")


@router.get("/contact/{inquiry_id}", response_model=Dict[str, Any])
def get_contact(
    inquiry_id: str,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        inquiry = ContactInquiryRepository(db).get_by_id(inquiry_id)
        if not inquiry:
            raise HTTPException(status_code=404, detail="Inquiry not found")
        return inquiry.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Fetch contact inquiry {inquiry_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch inquiry")


@router.put("/contact/{inquiry_id}", response_model=Dict[str, Any])
def update_contact(
    inquiry_id: str,
    body: InquiryUpdate,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if body.status is not None and body.status not in INQUIRY_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    try:
        repo = ContactInquiryRepository(db)
        inquiry = repo.get_by_id(inquiry_id)
        if not inquiry:
            raise HTTPException(status_code=404, detail="Inquiry not found")
        return repo.update(inquiry, provided(body)).to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update contact inquiry {inquiry_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update inquiry")


@router.delete("/contact/{inquiry_id}")
def delete_contact(
    inquiry_id: str,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = ContactInquiryRepository(db)
        inquiry = repo.get_by_id(inquiry_id)
        if not inquiry:
            raise HTTPException(status_code=404, detail="Inquiry not found")
        repo.delete(inquiry)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete contact inquiry {inquiry_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete inquiry")
    return {"message": "Inquiry deleted successfully"}
