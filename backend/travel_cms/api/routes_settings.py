from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from typing import Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.common import invalidate_later
from travel_cms.api.schemas import SiteSettingsUpdate, provided
from travel_cms.core import page_cache
from travel_cms.core.config import settings
from travel_cms.core.security import SessionUser, hash_password, require_admin
from travel_cms.db.database import get_db
from travel_cms.db.models import Role, User
from travel_cms.db.repositories import SiteSettingsRepository, UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["settings"])


@router.get("/settings", response_model=Dict[str, Any])
def get_settings(db: Session = Depends(get_db)):
    """Site settings; the row is created with defaults on first read."""
    cached = page_cache.get("/settings")
    if cached is not None:
        return cached
    try:
        result = SiteSettingsRepository(db).get_or_create().to_dict()
    except Exception as e:
        logger.error(f"Fetch settings failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch settings")
    return page_cache.put("/settings", result)


@router.put("/settings", response_model=Dict[str, Any])
def update_settings(
    body: SiteSettingsUpdate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = SiteSettingsRepository(db)
        result = repo.update(repo.get_or_create(), provided(body)).to_dict()
    except Exception as e:
        logger.error(f"Update settings failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update settings")

    logger.info(f"Site settings updated by {admin.email}")
    invalidate_later(background_tasks, "/", "/settings")
    return result


@router.post("/seed", response_model=Dict[str, Any])
def seed(db: Session = Depends(get_db)):
    """
    Bootstrap the first admin account and the settings row.
    Safe to call repeatedly: once an admin exists nothing changes.
    """
    try:
        users = UserRepository(db)
        if users.first_admin():
            return {"message": "Admin user already exists"}

        admin = users.add(
            User(
                name=settings.admin_name,
                email=settings.admin_email,
                password=hash_password(settings.admin_password),
                role=Role.ADMIN.value,
            )
        )
        SiteSettingsRepository(db).get_or_create()
    except Exception as e:
        logger.error(f"Seed failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to seed database")

    logger.info(f"Seeded admin user {admin.email}")
    return {"message": "Admin user created successfully", "email": admin.email}
