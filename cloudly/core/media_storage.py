# ============================================================================
# FILE: cloudly/core/media_storage.py
# ============================================================================
"""
Media storage providers for audio files and images.

Services only depend on the MediaStorage interface: store a buffer, get back a
durable URL plus the identifier needed to delete it later. Two providers are
shipped: Cloudinary (REST upload API over httpx) and a local directory that the
app serves through its static mount.
"""
import asyncio
import hashlib
import mimetypes
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
import httpx
from cloudly.config import Settings
from cloudly.core.exceptions import MediaStorageError
import logging

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class UploadOptions:
    """Where and how a buffer should be stored"""
    folder: str
    resource_type: str = "image"  # Cloudinary stores audio as "video"
    transformation: Optional[str] = None

@dataclass(frozen=True)
class StoredAsset:
    url: str
    public_id: str
    duration: Optional[float] = None

def avatar_options(base_folder: str) -> UploadOptions:
    return UploadOptions(folder=f"{base_folder}/avatars", transformation="w_200,h_200,c_fill,g_face")

def cover_options(base_folder: str) -> UploadOptions:
    return UploadOptions(folder=f"{base_folder}/covers", transformation="w_500,h_500,c_fill,g_center")

def audio_options(base_folder: str) -> UploadOptions:
    return UploadOptions(folder=f"{base_folder}/audio", resource_type="video", transformation="ac_mp3")

class MediaStorage(ABC):
    """Interface every media provider implements"""

    @abstractmethod
    async def store(self, data: bytes, options: UploadOptions, filename: Optional[str] = None) -> StoredAsset:
        """Persist a buffer and return its public URL and identifier"""

    @abstractmethod
    async def delete(self, public_id: str, resource_type: str = "image") -> None:
        """Delete a previously stored asset"""

    async def close(self) -> None:
        """Release provider resources"""

class LocalMediaStorage(MediaStorage):
    """Stores files below a directory served by the application itself"""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, public_id: str) -> Path:
        path = (self.root / public_id).resolve()
        if self.root.resolve() not in path.parents:
            raise MediaStorageError("Invalid media identifier")
        return path

    async def store(self, data: bytes, options: UploadOptions, filename: Optional[str] = None) -> StoredAsset:
        suffix = Path(filename).suffix.lower() if filename else ""
        public_id = f"{options.folder}/{uuid.uuid4().hex}{suffix}"
        path = self._path_for(public_id)
        if options.transformation:
            logger.debug(f"Local storage ignores transformation {options.transformation}")
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, data)
        except OSError as e:
            logger.error(f"Local media write failed for {public_id}: {e}")
            raise MediaStorageError("Failed to store media file")
        logger.info(f"Stored {len(data)} bytes at {public_id}")
        return StoredAsset(url=f"{self.base_url}/{public_id}", public_id=public_id)

    async def delete(self, public_id: str, resource_type: str = "image") -> None:
        path = self._path_for(public_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.info(f"Deleted local media {public_id}")

class CloudinaryStorage(MediaStorage):
    """Cloudinary provider using the signed REST upload API"""

    API_BASE = "https://api.cloudinary.com/v1_1"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 client: Optional[httpx.AsyncClient] = None):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary credentials are not configured")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(120.0, connect=10.0))

    def _endpoint(self, resource_type: str, action: str) -> str:
        return f"{self.API_BASE}/{self.cloud_name}/{resource_type}/{action}"

    def sign(self, params: Dict[str, str]) -> str:
        """SHA-1 signature over the sorted parameters followed by the API secret"""
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _signed_payload(self, params: Dict[str, str]) -> Dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {**params, "signature": self.sign(params), "api_key": self.api_key}

    async def store(self, data: bytes, options: UploadOptions, filename: Optional[str] = None) -> StoredAsset:
        params = {"folder": options.folder}
        if options.transformation:
            params["transformation"] = options.transformation
        name = filename or "upload"
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"

        try:
            response = await self.client.post(
                self._endpoint(options.resource_type, "upload"),
                data=self._signed_payload(params),
                files={"file": (name, data, content_type)},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Cloudinary upload to {options.folder} failed: {e}")
            raise MediaStorageError("Failed to upload media")

        result = response.json()
        logger.info(f"Uploaded {result.get('public_id')} to Cloudinary")
        return StoredAsset(
            url=result["secure_url"],
            public_id=result["public_id"],
            duration=result.get("duration"),
        )

    async def delete(self, public_id: str, resource_type: str = "image") -> None:
        try:
            response = await self.client.post(
                self._endpoint(resource_type, "destroy"),
                data=self._signed_payload({"public_id": public_id}),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise MediaStorageError(f"Failed to delete media {public_id}: {e}")
        logger.info(f"Cloudinary destroy {public_id}: {response.json().get('result')}")

    async def close(self) -> None:
        await self.client.aclose()

async def discard_asset(storage: MediaStorage, public_id: Optional[str], resource_type: str = "image") -> None:
    """Best-effort delete: failures are logged and never propagate"""
    if not public_id:
        return
    try:
        await storage.delete(public_id, resource_type)
    except Exception as e:
        logger.warning(f"Could not delete media asset {public_id}: {e}")

def create_media_storage(settings: Settings) -> MediaStorage:
    """Build the provider selected by MEDIA_BACKEND"""
    backend = settings.MEDIA_BACKEND.lower()
    if backend == "cloudinary":
        return CloudinaryStorage(
            settings.CLOUDINARY_CLOUD_NAME,
            settings.CLOUDINARY_API_KEY,
            settings.CLOUDINARY_API_SECRET,
        )
    if backend == "local":
        return LocalMediaStorage(settings.MEDIA_ROOT, settings.MEDIA_BASE_URL)
    raise ValueError(f"Unknown MEDIA_BACKEND: {settings.MEDIA_BACKEND}")
