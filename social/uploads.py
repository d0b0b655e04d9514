"""
social/uploads.py -- Profile picture validation and disk storage.

Validation happens entirely in memory before anything touches the disk: the
route reads at most max_bytes + 1 bytes, so an oversize upload is detected
without buffering the whole body.

Only raster types a browser renders as an image are accepted, and the
filename extension must agree with the declared content type. The stored
suffix therefore always maps back to an image media type when the file is
served (see IMAGE_SUFFIXES). SVG is refused because it can carry script.

Stored names are secrets.token_hex(12) plus the lower-cased extension. 96
random bits make collisions negligible; they are not checked for.
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path

from core.errors import UploadRejectedError

logger = logging.getLogger("postboard.social")

PUBLIC_PREFIX = "/uploads/"

# Accepted content type -> extensions it may arrive with.
IMAGE_TYPES: dict[str, tuple[str, ...]] = {
    "image/png": (".png",),
    "image/jpeg": (".jpg", ".jpeg"),
    "image/gif": (".gif",),
    "image/webp": (".webp",),
}

# Stored suffix -> media type it is served with.
IMAGE_SUFFIXES: dict[str, str] = {
    suffix: media_type for media_type, suffixes in IMAGE_TYPES.items() for suffix in suffixes
}


def validate_image(filename: str | None, content_type: str | None, data: bytes, max_bytes: int) -> None:
    """Raise UploadRejectedError unless data looks like an acceptable image upload."""
    if not filename or not data:
        raise UploadRejectedError("No file uploaded.")
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if not media_type.startswith("image/"):
        raise UploadRejectedError("Only image files are allowed.")
    if Path(filename).suffix.lower() not in IMAGE_TYPES.get(media_type, ()):
        raise UploadRejectedError("Only PNG, JPEG, GIF or WebP images with a matching extension are allowed.")
    if len(data) > max_bytes:
        raise UploadRejectedError(f"Image must be {max_bytes // (1024 * 1024)} MB or smaller.")


def store_image(uploads_dir: Path, filename: str, data: bytes) -> str:
    """Write data under uploads_dir with a random name and return its public path.

    Call validate_image() first; the suffix is trusted to be in IMAGE_SUFFIXES.
    """
    uploads_dir.mkdir(parents=True, exist_ok=True)
    stored = f"{secrets.token_hex(12)}{Path(filename).suffix.lower()}"
    (uploads_dir / stored).write_bytes(data)
    logger.info("Stored upload %s (%d bytes)", stored, len(data))
    return PUBLIC_PREFIX + stored
