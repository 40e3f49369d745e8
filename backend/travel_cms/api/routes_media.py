from fastapi import APIRouter, Depends, HTTPException
from typing import Dict
import logging

from travel_cms.api.schemas import MediaUpload
from travel_cms.core.security import SessionUser, require_admin
from travel_cms.services.media import MediaStore, MediaUploadError, get_media_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["media"])


@router.post("/upload", response_model=Dict[str, str])
async def upload_image(
    body: MediaUpload,
    admin: SessionUser = Depends(require_admin),
    store: MediaStore = Depends(get_media_store),
):
    """Upload a base64 data URI (or remote URL) and return its CDN URL."""
    if not body.file:
        raise HTTPException(status_code=400, detail="No file provided")
    try:
        url = await store.upload_image(body.file, body.folder)
    except MediaUploadError as e:
        logger.error(f"Upload by {admin.email} failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to upload image")
    return {"url": url}
