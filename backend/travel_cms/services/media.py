"""
Media store client (Cloudinary upload API).

Images arrive as base64 data URIs (or remote URLs) and are uploaded with an
incoming transformation that bounds them to 1200x800 and lets the CDN pick
quality and format. The durable ``secure_url`` is what gets stored on
packages, destinations and posts.
"""

from typing import Dict, Optional
import hashlib
import logging
import time

import httpx

from travel_cms.core.config import settings

logger = logging.getLogger(__name__)

UPLOAD_TRANSFORMATION = "c_limit,w_1200,h_800/q_auto,f_auto"


class MediaUploadError(Exception):
    """Upload could not be completed."""


def sign_params(params: Dict[str, str], api_secret: str) -> str:
    """Cloudinary signature: sha1 of the sorted key=value pairs plus the secret."""
    payload = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{payload}{api_secret}".encode("utf-8")).hexdigest()


class MediaStore:
    """Thin async client; ``transport`` lets tests plug in httpx.MockTransport."""

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name if cloud_name is not None else settings.cloudinary_cloud_name
        self.api_key = api_key if api_key is not None else settings.cloudinary_api_key
        self.api_secret = api_secret if api_secret is not None else settings.cloudinary_api_secret
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    @property
    def upload_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image/upload"

    async def upload_image(self, data: str, folder: Optional[str] = None) -> str:
        """Upload a data URI / URL and return the durable HTTPS URL."""
        if not self.configured:
            raise MediaUploadError("Media store is not configured")

        params = {
            "folder": folder or settings.media_folder,
            "timestamp": str(int(time.time())),
            "transformation": UPLOAD_TRANSFORMATION,
        }
        form = dict(params, file=data, api_key=self.api_key, signature=sign_params(params, self.api_secret))

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=settings.media_timeout) as client:
                response = await client.post(self.upload_url, data=form)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Cloudinary upload error: {e}")
            raise MediaUploadError("Failed to upload image") from e

        url = body.get("secure_url")
        if not url:
            raise MediaUploadError("Upload response carried no URL")
        logger.info(f"Uploaded image to {url}")
        return url


def get_media_store() -> MediaStore:
    """FastAPI dependency."""
    return MediaStore()
