"""
Cloudinary upload client.

Signed image uploads over the Cloudinary REST API. Used for profile
pictures and doctor portraits only.
"""

from __future__ import annotations

import hashlib
import logging
import time

import httpx
from fastapi import UploadFile

from ..core.config import settings
from ..core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class CloudinaryClient:
    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

    def __init__(self):
        self._cloud_name = settings.CLOUDINARY_CLOUD_NAME
        self._api_key = settings.CLOUDINARY_API_KEY
        self._api_secret = settings.CLOUDINARY_API_SECRET

    @property
    def is_configured(self) -> bool:
        return bool(self._cloud_name and self._api_key and self._api_secret)

    def _signature(self, params: dict) -> str:
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1(f"{to_sign}{self._api_secret}".encode()).hexdigest()

    async def upload(self, file: UploadFile) -> str:
        """Upload an image and return its secure URL."""
        if not self.is_configured:
            logger.error("Cloudinary credentials not configured")
            raise ExternalServiceError("Image storage is not configured")

        params = {"timestamp": int(time.time())}
        data = {
            **params,
            "api_key": self._api_key,
            "signature": self._signature(params),
        }
        content = await file.read()

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    self.UPLOAD_URL.format(cloud_name=self._cloud_name),
                    data=data,
                    files={"file": (file.filename, content, file.content_type)},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Image upload failed: {e}")
            raise ExternalServiceError("Image upload failed") from e

        try:
            url = response.json().get("secure_url")
        except ValueError as e:
            logger.error(f"Unreadable upload response for {file.filename}: {e}")
            raise ExternalServiceError("Image upload failed") from e
        if not url:
            raise ExternalServiceError("Image upload failed")

        logger.info(f"Uploaded image {file.filename} to {url}")
        return url
