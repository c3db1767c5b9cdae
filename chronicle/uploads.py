"""
Profile picture upload pipeline: buffer, validate, store, derive the public URL.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from chronicle.errors import ValidationError
from chronicle.storage import StorageClient

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "profiles"
INVALID_TYPE_MESSAGE = "File harus berupa gambar."
TOO_LARGE_MESSAGE = "File too large"


@dataclass
class ImageUpload:
    """An uploaded file held fully in memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


async def read_upload(file: UploadFile, max_bytes: int) -> ImageUpload:
    """
    Buffer ``file`` in memory. At most ``max_bytes + 1`` bytes are read, which
    is enough to tell an oversized file apart without holding all of it.
    """
    data = await file.read(max_bytes + 1)
    return ImageUpload(
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=data,
    )


def validate_image(
    upload: ImageUpload, *, allowed_mime_types: Iterable[str], max_bytes: int
) -> None:
    if upload.content_type not in set(allowed_mime_types):
        raise ValidationError(INVALID_TYPE_MESSAGE)
    if upload.size > max_bytes:
        raise ValidationError(TOO_LARGE_MESSAGE)


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


def build_object_key(filename: str, timestamp_ms: int) -> str:
    return f"{PROFILE_PREFIX}/{timestamp_ms}-{filename}"


async def upload_profile_picture(
    storage: StorageClient,
    upload: ImageUpload,
    *,
    timestamp_ms: Optional[int] = None,
) -> str:
    """Store ``upload`` and return its public URL. Storage errors propagate."""
    if timestamp_ms is None:
        timestamp_ms = current_timestamp_ms()
    key = build_object_key(upload.filename, timestamp_ms)
    await run_in_threadpool(
        storage.upload_bytes, key, upload.data, upload.content_type
    )
    logger.info("Uploaded %s (%d bytes) to %s", key, upload.size, storage.bucket)
    return storage.public_url(key)
