"""Filename and file-type helpers shared by processors and services."""

import os
import re
from typing import Optional

from ..constants import DEFAULT_MIME_TYPE, IMAGE_EXTENSIONS, MERGEABLE_EXTENSIONS, MIME_TYPES

_UNSAFE_CHARACTERS = re.compile(r"[^a-zA-Z0-9._-]")
_DOT_RUNS = re.compile(r"\.+")

MAX_FILENAME_LENGTH = 255


def sanitize_filename(filename: str) -> str:
    """Replace unsafe characters with ``_``, collapse dot runs, cap the length.

    Example:
        >>> sanitize_filename("my scan..final.PDF")
        'my_scan.final.PDF'
    """
    cleaned = _UNSAFE_CHARACTERS.sub("_", filename)
    cleaned = _DOT_RUNS.sub(".", cleaned)
    return cleaned[:MAX_FILENAME_LENGTH]


def get_extension(filename: Optional[str]) -> str:
    """Lower-case extension without the dot, or ``""`` when there is none."""
    if not filename:
        return ""
    _, extension = os.path.splitext(filename)
    return extension.lstrip(".").lower()


def get_stem(filename: str) -> str:
    stem, _ = os.path.splitext(filename)
    return stem or "file"


def get_mime_type(extension: str, declared: Optional[str] = None) -> str:
    """Resolve the MIME type for an extension.

    The extension table wins; otherwise the declared content type is used,
    falling back to ``application/octet-stream``.
    """
    known = MIME_TYPES.get(extension.lower())
    if known:
        return known
    if declared and declared.strip():
        return declared.strip()
    return DEFAULT_MIME_TYPE


def is_image(extension: Optional[str]) -> bool:
    return bool(extension) and extension.lower() in IMAGE_EXTENSIONS


def is_mergeable(extension: Optional[str]) -> bool:
    return bool(extension) and extension.lower() in MERGEABLE_EXTENSIONS


def pdf_page_name(original_name: str, page_number: int) -> str:
    """Name given to the JPEG rendered from page ``page_number`` of a PDF."""
    return f"{get_stem(original_name)}_page_{page_number}.jpg"


def content_disposition(filename: str, disposition: str = "attachment") -> str:
    """``Content-Disposition`` value naming ``filename``."""
    safe = sanitize_filename(filename) or "download"
    return f'{disposition}; filename="{safe}"'
