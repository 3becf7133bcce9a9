"""
File Upload Utility - logbook entry images.

Supported formats: .jpg .jpeg .png .gif .webp
Max file size: MAX_IMAGE_SIZE_MB (default 5MB)

Images are written under <UPLOAD_DIR>/logbook/ with a unique name. The value
stored on the entry is always the relative path /uploads/logbook/<name>;
absolute_url() turns it into a full URL for the request being answered.
"""

import logging
import os
import time
import uuid
from typing import Optional

from fastapi import Request, UploadFile

from siwes_portal.core.config import get_settings
from siwes_portal.core.exceptions import PortalError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
UPLOAD_URL_PREFIX = "/uploads"
LOGBOOK_SUBDIR = "logbook"


class FileTooLargeError(PortalError):
    status_code = 413
    default_code = "FILE_TOO_LARGE"


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def logbook_upload_dir() -> str:
    path = os.path.join(get_settings().upload_dir, LOGBOOK_SUBDIR)
    os.makedirs(path, exist_ok=True)
    return path


async def save_logbook_image(file: Optional[UploadFile]) -> Optional[str]:
    """
    Validate and store an uploaded image.

    Returns:
        Relative URL of the stored image, or None when no file was sent

    Raises:
        ValidationError for an unsupported type, FileTooLargeError over the limit
    """
    if file is None or not file.filename:
        return None

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file type '{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
            details={"field": "image"},
        )

    max_mb = get_settings().max_image_size_mb
    content = await file.read()
    if len(content) > max_mb * 1024 * 1024:
        raise FileTooLargeError(f"File too large. Maximum size: {max_mb}MB")

    name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}{ext}"
    with open(os.path.join(logbook_upload_dir(), name), "wb") as fh:
        fh.write(content)

    logger.info(f"Stored logbook image {name} ({len(content)} bytes)")
    return f"{UPLOAD_URL_PREFIX}/{LOGBOOK_SUBDIR}/{name}"


def absolute_url(request: Request, path: Optional[str]) -> Optional[str]:
    """Prefix a stored relative path with the request's own scheme and host."""
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    return f"{request.url.scheme}://{request.url.netloc}{path}"


def discard_upload(relative_url: Optional[str]) -> None:
    """Remove an image stored for a request that ended up failing."""
    if not relative_url or not relative_url.startswith(f"{UPLOAD_URL_PREFIX}/{LOGBOOK_SUBDIR}/"):
        return
    path = os.path.join(logbook_upload_dir(), os.path.basename(relative_url))
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
