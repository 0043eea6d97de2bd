"""
Image store client (Cloudinary upload API over httpx).
Uploads return durable URLs plus the public id used to delete the asset later.
"""

from dataclasses import dataclass
from hashlib import sha1
import logging
import time

import httpx

from snapscape.core.config import settings
from snapscape.core.exceptions import InternalError

logger = logging.getLogger(__name__)

THUMBNAIL_TRANSFORM = "c_fill,w_400,h_400,q_auto"


class ImageStoreError(InternalError):
    """Raised when the image store rejects or fails an operation"""
    pass


@dataclass
class StoredImage:
    url: str
    thumbnail_url: str
    public_id: str


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary signature: sha1 of sorted key=value pairs joined by & plus the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def thumbnail_url_for(url: str) -> str:
    if "/upload/" not in url:
        return url
    return url.replace("/upload/", f"/upload/{THUMBNAIL_TRANSFORM}/", 1)


class CloudinaryImageStore:
    def __init__(
        self,
        cloud_name: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        folder: str | None = None,
        timeout: float = 30.0,
    ):
        self.cloud_name = cloud_name or settings.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key or settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret or settings.CLOUDINARY_API_SECRET
        self.folder = folder or settings.CLOUDINARY_UPLOAD_FOLDER
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/image"

    def _require_config(self) -> None:
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise ImageStoreError("Image storage is not configured")

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {**params, "api_key": self.api_key, "signature": sign_params(params, self.api_secret)}

    async def upload(self, content: bytes, filename: str, content_type: str | None = None) -> StoredImage:
        self._require_config()
        data = self._signed({"folder": self.folder})
        files = {"file": (filename, content, content_type or "application/octet-stream")}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/upload", data=data, files=files)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Image upload failed for {filename}: {e}")
            raise ImageStoreError("Failed to upload image")

        url = payload.get("secure_url") or payload.get("url")
        public_id = payload.get("public_id")
        if not url or not public_id:
            logger.error(f"Unexpected upload response: {payload}")
            raise ImageStoreError("Failed to upload image")

        return StoredImage(url=url, thumbnail_url=thumbnail_url_for(url), public_id=public_id)

    async def delete(self, public_id: str) -> bool:
        """Delete by public id. Returns False (and logs) on failure."""
        try:
            self._require_config()
            data = self._signed({"public_id": public_id})
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/destroy", data=data)
                response.raise_for_status()
                result = response.json().get("result")
        except (httpx.HTTPError, ImageStoreError) as e:
            logger.error(f"Image delete failed for {public_id}: {e}")
            return False

        if result not in ("ok", "not found"):
            logger.warning(f"Image delete for {public_id} returned {result}")
            return False
        return True


image_store = CloudinaryImageStore()


def get_image_store() -> CloudinaryImageStore:
    return image_store
