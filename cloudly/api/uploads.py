# ============================================================================
# FILE: cloudly/api/uploads.py
# ============================================================================
from fastapi import HTTPException, UploadFile, status
from typing import FrozenSet
import logging

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPES: FrozenSet[str] = frozenset({
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/x-wav",
    "audio/m4a",
    "audio/x-m4a",
    "audio/mp4",
    "audio/ogg",
    "audio/flac",
})

IMAGE_MIME_TYPES: FrozenSet[str] = frozenset({"image/jpeg", "image/png", "image/webp"})

CHUNK_SIZE = 1024 * 1024

async def read_upload(upload: UploadFile, allowed_types: FrozenSet[str], max_bytes: int, label: str) -> bytes:
    """
    Validate an uploaded file's content type and size and return its bytes.

    Reads in chunks so an oversized file is rejected without buffering all of it.
    """
    if upload.content_type not in allowed_types:
        allowed = ", ".join(sorted(t.split("/")[1] for t in allowed_types))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} file type. Allowed: {allowed}"
        )

    buffer = bytearray()
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label.capitalize()} file exceeds {max_bytes // (1024 * 1024)}MB limit"
            )

    if not buffer:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{label.capitalize()} file is empty")

    logger.debug(f"Accepted {label} upload {upload.filename} ({len(buffer)} bytes)")
    return bytes(buffer)
