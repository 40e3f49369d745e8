"""
Public composite reads: the home page feed and the site header search.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Callable, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.core import page_cache
from travel_cms.core.rate_limiting import SEARCH_LIMIT, limiter
from travel_cms.db.database import get_session_factory
from travel_cms.db.models import ApprovalStatus, PublishStatus
from travel_cms.db.repositories import (
    BlogPostRepository,
    DestinationRepository,
    PackageRepository,
    SiteSettingsRepository,
    TestimonialRepository,
)
from travel_cms.services.aggregation import fan_out, public_search

logger = logging.getLogger(__name__)

router = APIRouter(tags=["site"])

HOME_PACKAGES = 6
HOME_POSTS = 4

HOME_QUERIES = {
    "packages": lambda db: [
        p.to_dict() for p in PackageRepository(db).filter_packages(
            status=PublishStatus.ACTIVE.value, limit=HOME_PACKAGES
        )
    ],
    "destinations": lambda db: [
        dict(d.to_dict(), package_count=count or 0)
        for d, count in DestinationRepository(db).filter_destinations(status=PublishStatus.ACTIVE.value)
    ],
    "blog_posts": lambda db: [
        b.to_dict() for b in BlogPostRepository(db).filter_posts(published=True, limit=HOME_POSTS)
    ],
    "testimonials": lambda db: [
        t.to_dict() for t in TestimonialRepository(db).page(
            status=ApprovalStatus.APPROVED.value, featured=True
        )[0]
    ],
    "settings": lambda db: SiteSettingsRepository(db).get_or_create().to_dict(),
}


@router.get("/home", response_model=Dict[str, Any])
async def home_feed(factory: Callable[[], Session] = Depends(get_session_factory)):
    """Featured packages, destinations, latest posts, testimonials and settings."""
    cached = page_cache.get(page_cache.HOME_CACHE_PATH)
    if cached is not None:
        return cached
    try:
        result = await fan_out(factory, HOME_QUERIES)
    except Exception as e:
        logger.error(f"Home feed failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch home page data")
    return page_cache.put(page_cache.HOME_CACHE_PATH, result)


@router.get("/search", response_model=Dict[str, Any])
@limiter.limit(SEARCH_LIMIT)
async def site_search(
    request: Request,
    q: str = Query(""),
    factory: Callable[[], Session] = Depends(get_session_factory),
):
    try:
        return await public_search(factory, q)
    except Exception as e:
        logger.error(f"Public search failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Search failed")
