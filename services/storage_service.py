"""
Storage Service
Blob storage for medication photos on the local filesystem
"""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Optional

from config import settings
from exceptions import BackendUnavailableError, NotAuthenticatedError, ValidationError
import models


logger = logging.getLogger(__name__)


_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: Optional[str]) -> str:
    """Replace anything but letters, digits, dots and dashes with underscores"""
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", filename or "")
    return cleaned or "image"


def validate_image(
    size: int,
    content_type: Optional[str],
    max_bytes: int,
    allowed_types: Optional[list] = None
) -> None:
    """
    Raise ValidationError unless the payload is an acceptable image

    Args:
        size: Payload size in bytes
        content_type: Declared MIME type
        max_bytes: Size limit
        allowed_types: Exact MIME types to accept; any image/* when omitted
    """
    content_type = (content_type or "").lower()
    if allowed_types is not None:
        if content_type not in allowed_types:
            raise ValidationError("Only JPG, PNG, or WEBP files are allowed")
    elif not content_type.startswith("image/"):
        raise ValidationError("File must be an image")

    if size <= 0:
        raise ValidationError("File is empty")
    if size > max_bytes:
        raise ValidationError(
            f"File size too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )


class ImageStorage:
    """
    Stores images under ``<root>/<user_id>/<epoch_ms>_<filename>`` and issues
    URLs under ``base_url``.
    """

    def __init__(self, root_dir: str, base_url: str, max_bytes: int):
        self.root_dir = Path(root_dir)
        self.base_url = base_url.rstrip("/")
        self.max_bytes = max_bytes

    async def upload_image(
        self,
        user: Optional[models.User],
        data: bytes,
        content_type: Optional[str],
        filename: Optional[str] = None
    ) -> str:
        """
        Store an image for the user

        Returns:
            Public URL of the stored image

        Raises:
            NotAuthenticatedError: no user
            ValidationError: not an image, empty, or too large
            BackendUnavailableError: the file could not be written
        """
        if user is None:
            raise NotAuthenticatedError("Not authenticated")

        validate_image(len(data), content_type, self.max_bytes)

        relative = f"{user.id}/{int(time.time() * 1000)}_{sanitize_filename(filename)}"
        target = self.root_dir / relative
        logger.info(f"Uploading image for user {user.id}: {relative} ({len(data)} bytes)")

        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            logger.error(f"Image upload failed for {relative}: {e}")
            raise BackendUnavailableError(f"Failed to upload image: {e}") from e

        return f"{self.base_url}/{relative}"

    async def delete_image(self, url: str) -> None:
        """Remove an image previously stored by upload_image"""
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            raise ValidationError(f"Not a stored image: {url}")
        relative = url[len(prefix):]
        target = self.root_dir / relative

        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete image {relative}: {e}")
            raise BackendUnavailableError(f"Failed to delete image: {e}") from e
        logger.info(f"Deleted image {relative}")

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        # never overwrite an existing upload
        with open(target, "xb") as fh:
            fh.write(data)


# Singleton instance
image_storage = ImageStorage(
    root_dir=settings.IMAGE_STORAGE_DIR,
    base_url=settings.IMAGE_BASE_URL,
    max_bytes=settings.IMAGE_MAX_BYTES,
)
