"""
Content type helpers for File elements and archive attachments.
"""

import mimetypes
import re
from pathlib import PurePosixPath

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# checked before the platform mimetypes table
EXTENSION_CONTENT_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "htm": "text/html",
    "zip": "application/zip",
    "step": "application/step",
    "stp": "application/step",
}

# RFC 2046 type/subtype with optional parameters, as the AAS contentType_t
CONTENT_TYPE_PATTERN = re.compile(
    r"^[!#$%&'*+\-.^_`|~0-9a-zA-Z]+/[!#$%&'*+\-.^_`|~0-9a-zA-Z]+"
    r"(\s*;\s*[!#$%&'*+\-.^_`|~0-9a-zA-Z]+=([!#$%&'*+\-.^_`|~0-9a-zA-Z]+|\"[^\"]*\"))*$"
)


def guess_content_type(path: str | None) -> str:
    """Infer a content type from a path or URL's file extension."""
    if not path:
        return DEFAULT_CONTENT_TYPE
    name = path.split("?", 1)[0].split("#", 1)[0]
    suffix = PurePosixPath(name).suffix.lower().lstrip(".")
    if suffix in EXTENSION_CONTENT_TYPES:
        return EXTENSION_CONTENT_TYPES[suffix]
    return mimetypes.guess_type(name)[0] or DEFAULT_CONTENT_TYPE


def is_valid_content_type(value: str | None) -> bool:
    if value is None:
        return False
    return bool(CONTENT_TYPE_PATTERN.match(value.strip()))
