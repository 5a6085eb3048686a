"""Local file storage for report photos.

Images are written under ``settings.upload_dir`` and served by the API at
``/uploads/<key>``.
"""

import asyncio
import hashlib
from datetime import datetime, timezone
from pathlib import Path

from .config import get_settings
from .logging import get_logger

logger = get_logger(__name__)

UPLOAD_URL_PREFIX = "/uploads"

ALLOWED_IMAGE_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


class ImageRejectedError(ValueError):
    """Upload is not an acceptable image."""


def compute_content_hash(data: bytes) -> str:
    """Compute SHA-256 hash of content.

    Args:
        data: Content to hash

    Returns:
        Hex-encoded SHA-256 hash
    """
    return hashlib.sha256(data).hexdigest()


def generate_image_key(report_id: str, extension: str, timestamp: datetime | None = None) -> str:
    """Generate a storage key for a report photo.

    Format: reports/{year-month}/{report_id}.{extension}
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)
    safe_identifier = report_id.replace("/", "_").replace("\\", "_")
    return f"reports/{timestamp.strftime('%Y-%m')}/{safe_identifier}.{extension}"


class ImageStorage:
    """Stores uploaded images on the local filesystem."""

    def __init__(self, root: str | Path | None = None, max_bytes: int | None = None):
        settings = get_settings()
        self.root = Path(root if root is not None else settings.upload_dir)
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes

    def validate(self, content: bytes, content_type: str | None) -> str:
        """Check an upload and return its file extension.

        Raises:
            ImageRejectedError: If the upload is empty, too large or not an image
        """
        if not content:
            raise ImageRejectedError("Image file is empty")
        if len(content) > self.max_bytes:
            raise ImageRejectedError(
                f"Image exceeds the {self.max_bytes // (1024 * 1024)}MB upload limit"
            )
        extension = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
        if extension is None:
            raise ImageRejectedError("Only image files are allowed")
        return extension

    async def save(self, report_id: str, content: bytes, content_type: str | None) -> tuple[str, str]:
        """Write an image for ``report_id``.

        Returns:
            Tuple of (public URL, SHA-256 content hash)
        """
        extension = self.validate(content, content_type)
        key = generate_image_key(report_id, extension)
        path = self.root / key

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        await asyncio.to_thread(_write)
        content_hash = compute_content_hash(content)
        logger.info(
            f"Stored image for report {report_id}",
            extra={"report_id": report_id, "key": key, "bytes": len(content), "content_hash": content_hash},
        )
        return f"{UPLOAD_URL_PREFIX}/{key}", content_hash

    async def delete(self, url: str | None) -> None:
        if not url or not url.startswith(UPLOAD_URL_PREFIX + "/"):
            return
        path = self.root / url[len(UPLOAD_URL_PREFIX) + 1:]
        await asyncio.to_thread(path.unlink, missing_ok=True)


_image_storage: ImageStorage | None = None


def get_image_storage() -> ImageStorage:
    """Get the image storage singleton."""
    global _image_storage
    if _image_storage is None:
        _image_storage = ImageStorage()
    return _image_storage
