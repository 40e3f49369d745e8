from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
import logging

from travel_cms.api.common import invalidate_later
from travel_cms.api.schemas import BlogPostCreate, BlogPostUpdate, provided
from travel_cms.core import page_cache
from travel_cms.core.security import SessionUser, require_admin
from travel_cms.core.slugs import numbered_candidates, slugify
from travel_cms.db.database import get_db
from travel_cms.db.repositories import BlogPostRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["blog"])


@router.get("/blog", response_model=List[Dict[str, Any]])
def list_posts(
    published: Optional[bool] = Query(None),
    featured: Optional[bool] = Query(None),
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    query = page_cache.query_key(published=published, featured=featured, category=category, limit=limit)
    cached = page_cache.get("/blog", query)
    if cached is not None:
        return cached
    try:
        posts = BlogPostRepository(db).filter_posts(
            published=published, featured=featured, category=category, limit=limit
        )
        result = [p.to_dict() for p in posts]
    except Exception as e:
        logger.error(f"List blog posts failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch blog posts")
    return page_cache.put("/blog", result, query)


@router.get("/blog/{key}", response_model=Dict[str, Any])
def get_post(key: str, db: Session = Depends(get_db)):
    """Post by id or slug. Every read counts as a view, so this route is never cached."""
    try:
        repo = BlogPostRepository(db)
        post = repo.get_by_id_or_slug(key)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")
        return repo.increment_views(post).to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Fetch blog post {key} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch blog post")


@router.post("/blog", status_code=201, response_model=Dict[str, Any])
def create_post(
    body: BlogPostCreate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not body.title or not body.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")

    published = bool(body.published)
    data = provided(body)
    data.update(
        author=body.author or admin.name or "Admin",
        tags=body.tags or [],
        featured=bool(body.featured),
        published=published,
        published_at=datetime.utcnow() if published else None,
    )
    try:
        post = BlogPostRepository(db).create(data, numbered_candidates(slugify(body.title, "post")))
        result = post.to_dict()
    except Exception as e:
        logger.error(f"Create blog post failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create blog post")

    invalidate_later(background_tasks, "/", "/blog")
    return result


@router.put("/blog/{post_id}", response_model=Dict[str, Any])
def update_post(
    post_id: str,
    body: BlogPostUpdate,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = provided(body)
    if "title" in data and not (data["title"] or "").strip():
        raise HTTPException(status_code=400, detail="Title cannot be empty")
    # published_at is stamped once, on first publication
    data.pop("published_at", None)

    try:
        repo = BlogPostRepository(db)
        post = repo.get_by_id(post_id)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")
        if data.get("published") and post.published_at is None:
            data["published_at"] = body.published_at or datetime.utcnow()
        post = repo.update(post, data)
        result = post.to_dict()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update blog post {post_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update blog post")

    invalidate_later(background_tasks, "/", "/blog")
    return result


@router.delete("/blog/{post_id}")
def delete_post(
    post_id: str,
    background_tasks: BackgroundTasks,
    admin: SessionUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        repo = BlogPostRepository(db)
        post = repo.get_by_id(post_id)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")
        repo.delete(post)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete blog post {post_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete blog post")

    invalidate_later(background_tasks, "/", "/blog")
    return {"message": "Blog post deleted successfully"}
