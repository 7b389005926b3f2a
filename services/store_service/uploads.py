"""Image upload handling for avatars, category images and product images.

Files are written under UPLOAD_DIR and served back from /uploads.
"""

import time
import uuid
from pathlib import Path
from typing import Optional, Union

from fastapi import HTTPException, UploadFile, status
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}

CHUNK_SIZE = 64 * 1024


def upload_root() -> Path:
    return Path(get_settings().UPLOAD_DIR)


def public_url(path: Path) -> str:
    """Map a stored file to the URL path it is served from."""
    relative = path.relative_to(upload_root())
    return "/uploads/" + relative.as_posix()


def _extension_for(upload: UploadFile) -> str:
    suffix = Path(upload.filename or "").suffix.lower()
    if upload.content_type not in ALLOWED_IMAGE_TYPES or (
        suffix and suffix not in ALLOWED_EXTENSIONS
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image files (jpeg, jpg, png, gif, webp) are allowed",
        )
    return suffix or ALLOWED_IMAGE_TYPES[upload.content_type]


async def save_image(upload: UploadFile, folder: str, stem: str) -> str:
    """
    Validate and store an uploaded image.

    Args:
        upload: The multipart file
        folder: Sub-directory under UPLOAD_DIR (e.g. "avatars")
        stem: File name prefix, a timestamp and extension are appended

    Returns:
        The public URL path of the stored file
    """
    settings = get_settings()
    extension = _extension_for(upload)

    target_dir = upload_root() / folder
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"{stem}-{int(time.time() * 1000)}{extension}"

    written = 0
    try:
        with open(target, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB}MB",
                    )
                out.write(chunk)
    except HTTPException:
        target.unlink(missing_ok=True)
        raise
    finally:
        await upload.close()

    logger.info("Stored upload %s (%d bytes)", target, written)
    return public_url(target)


def delete_upload(url: Optional[str]) -> None:
    """Remove a previously stored upload given its public URL path."""
    if not url or not url.startswith("/uploads/"):
        return
    root = upload_root().resolve()
    path = (root / url[len("/uploads/") :]).resolve()
    if not path.is_relative_to(root):
        logger.warning("Refusing to delete %s outside the upload directory", url)
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to delete upload %s: %s", path, e)


def unique_stem(prefix: str, owner: Optional[Union[uuid.UUID, int]] = None) -> str:
    return f"{prefix}-{owner}" if owner is not None else f"{prefix}-{uuid.uuid4().hex[:8]}"
