"""Pydantic schemas and shared upload rules.

This module is imported by both the upload endpoint and the upload client so
that the two sides enforce exactly the same rules:
- MAX_FILE_SIZE_BYTES: per-file size limit (100MB)
- ALLOWED_MIME_TYPES: the accepted MIME types
- sanitize_filename(): safe-character filename rewriting
- format_file_size(): human-readable 1024-based sizes

Response models use camelCase keys on the wire (fileUrl, fileId, ...).
"""
import math
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# File size limit: 100MB
MAX_FILE_SIZE_BYTES = 100 * 1024 * 1024

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/webm",
    "video/quicktime",
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "application/pdf",
    "application/zip",
    "application/x-rar-compressed",
})

ARCHIVE_MIME_TYPES = frozenset({"application/zip", "application/x-rar-compressed"})

SIZE_UNITS = ("Bytes", "KB", "MB", "GB")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9.\-_]")


class FileCategory(str, Enum):
    """Broad grouping of allowed MIME types.

    The client picks its preview widget from the category:
    - IMAGE, VIDEO, AUDIO: rendered inline
    - PDF, ARCHIVE, OTHER: rendered as a static badge
    """
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    ARCHIVE = "archive"
    OTHER = "other"


def get_file_category(mime_type: str) -> FileCategory:
    """Determine the file category from a MIME type.

    Examples:
        >>> get_file_category("image/png")
        FileCategory.IMAGE
        >>> get_file_category("application/x-rar-compressed")
        FileCategory.ARCHIVE
        >>> get_file_category("text/plain")
        FileCategory.OTHER
    """
    if mime_type.startswith("image/"):
        return FileCategory.IMAGE
    if mime_type.startswith("video/"):
        return FileCategory.VIDEO
    if mime_type.startswith("audio/"):
        return FileCategory.AUDIO
    if mime_type == "application/pdf":
        return FileCategory.PDF
    if mime_type in ARCHIVE_MIME_TYPES:
        return FileCategory.ARCHIVE
    return FileCategory.OTHER


def is_allowed_mime_type(mime_type: Optional[str]) -> bool:
    return mime_type in ALLOWED_MIME_TYPES


def sanitize_filename(filename: str) -> str:
    """Replace every character outside ``[A-Za-z0-9.-_]`` with ``_``.

    The result only contains safe characters, so applying the function twice
    gives the same output as applying it once.
    """
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def format_file_size(size_bytes: int) -> str:
    """Format a byte count using 1024-based units.

    Values are rounded to two decimals with trailing zeros dropped:

        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(1048576)
        '1 MB'
    """
    if size_bytes <= 0:
        return "0 Bytes"
    exponent = int(math.floor(math.log(size_bytes) / math.log(1024)))
    # log() can land a hair off an exact power of 1024
    if size_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    elif exponent > 0 and size_bytes < 1024 ** exponent:
        exponent -= 1
    exponent = min(exponent, len(SIZE_UNITS) - 1)
    # exact ties round up: 1152 bytes is 1.13 KB
    value = str(Decimal(size_bytes / 1024 ** exponent).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return f"{value.rstrip('0').rstrip('.')} {SIZE_UNITS[exponent]}"


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UploadResult(BaseModel):
    """Response after a successful upload.

    Returned by POST /upload once the provider has stored the file. It is
    never persisted server-side.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    success: bool = True
    file_url: str = Field(..., description="Public URL returned by the provider")
    thumbnail_url: Optional[str] = Field(None, description="Provider thumbnail URL")
    file_id: str = Field(..., description="Provider-assigned file ID")
    file_type: str = Field(..., description="MIME type of the uploaded file")
    file_size: int = Field(..., description="File size in bytes")
    file_name: str = Field(..., description="Sanitized filename")
    upload_time: str = Field(default_factory=utc_timestamp, description="ISO-8601 upload time")


class ErrorResult(BaseModel):
    """Terminal error body for a failed upload request."""
    success: bool = False
    error: str
