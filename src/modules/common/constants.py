"""Common constants used across the application."""

from typing import Callable, Dict, Type

from fastapi import HTTPException, status

from .exceptions import (
    AuthenticationError,
    DomainError,
    FileSystemError,
    FileTooLargeError,
    PermissionDeniedError,
    ProcessingError,
    ResourceExistsError,
    ResourceNotFoundError,
    ValidationError,
)

EXCEPTION_MAPPING: Dict[Type[DomainError], Callable[[str], HTTPException]] = {
    ResourceNotFoundError: lambda message: HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message),
    ResourceExistsError: lambda message: HTTPException(status_code=status.HTTP_409_CONFLICT, detail=message),
    ValidationError: lambda message: HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message),
    FileTooLargeError: lambda message: HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=message
    ),
    PermissionDeniedError: lambda message: HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message),
    AuthenticationError: lambda message: HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail=message, headers={"WWW-Authenticate": "Bearer"}
    ),
    ProcessingError: lambda message: HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message),
    FileSystemError: lambda message: HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
    ),
}

IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "tiff", "tif", "gif", "bmp", "webp")

MERGEABLE_EXTENSIONS = ("pdf",) + IMAGE_EXTENSIONS

DEFAULT_ALLOWED_EXTENSIONS = ("pdf", "jpg", "jpeg", "png", "tiff", "tif")

MIME_TYPES: Dict[str, str] = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "odt": "application/vnd.oasis.opendocument.text",
    "ods": "application/vnd.oasis.opendocument.spreadsheet",
    "zip": "application/zip",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# PDF points
A4_WIDTH = 595.28
A4_HEIGHT = 841.89

DOCUMENT_TYPE_PATTERN = r"^[a-zA-Z0-9_-]{1,50}$"
