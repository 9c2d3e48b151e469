"""
Validation and persistence of uploaded media files.

An upload is accepted only when both its extension and its MIME type are on
the allow-lists and it fits the size limit. Accepted files are stored under a
random name so stored filenames never collide.
"""

from __future__ import annotations

import logging
import os
from typing import Optional
from uuid import uuid4

from portfolio.errors import ValidationError
from portfolio.storage import MediaStorage

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ALLOWED_EXTENSIONS = frozenset(
    {".jpeg", ".jpg", ".png", ".gif", ".webp", ".svg",
     ".mp4", ".mov", ".avi", ".pdf", ".doc", ".docx"}
)

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/avi",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """Render a byte count the way the media library displays it."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    scaled = float(size)
    while scaled >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        scaled /= 1024
        exponent += 1
    value = round(scaled, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {_SIZE_UNITS[exponent]}"


def validate_upload(
    original_name: str,
    content_type: Optional[str],
    size: int,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> str:
    """Check an upload against the allow-lists and return its extension."""
    if not original_name:
        raise ValidationError("No file uploaded", details={"field": "file"})
    extension = os.path.splitext(original_name)[1].lower()
    mime_type = (content_type or "").split(";")[0].strip().lower()
    if extension not in ALLOWED_EXTENSIONS or mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            "Only images, videos, and documents are allowed",
            details={"extension": extension, "mime_type": mime_type},
        )
    if size == 0:
        raise ValidationError("Uploaded file is empty", details={"field": "file"})
    if size > max_bytes:
        raise ValidationError(
            f"File exceeds the {format_file_size(max_bytes)} limit",
            details={"size": size, "max_bytes": max_bytes},
        )
    return extension


def accept_upload(
    original_name: str,
    content_type: Optional[str],
    data: bytes,
    storage: MediaStorage,
    *,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    alt_text: Optional[str] = None,
    uploaded_by: Optional[str] = None,
) -> dict:
    """
    Validate and store an upload, returning the payload for
    DbClient.create_media.
    """
    extension = validate_upload(original_name, content_type, len(data), max_bytes)
    mime_type = (content_type or "").split(";")[0].strip().lower()
    filename = f"{uuid4().hex}{extension}"
    url = storage.save(filename, data, mime_type)
    logger.info(
        "Stored upload %s as %s (%s)",
        original_name,
        filename,
        format_file_size(len(data)),
    )
    return {
        "filename": filename,
        "original_name": original_name,
        "mime_type": mime_type,
        "size": str(len(data)),
        "url": url,
        "alt_text": alt_text or None,
        "uploaded_by": uploaded_by,
    }
