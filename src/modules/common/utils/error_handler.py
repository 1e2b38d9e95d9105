"""Mapping of domain exceptions to HTTP responses."""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ....infrastructure.logging import get_logger
from ..constants import EXCEPTION_MAPPING
from ..exceptions import DomainError, FileSystemError

logger = get_logger(__name__)


def map_exception(error: DomainError) -> HTTPException:
    """Map a domain exception to a corresponding HTTP exception."""
    for exception_class, mapper in EXCEPTION_MAPPING.items():
        if isinstance(error, exception_class):
            return mapper(str(error))

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"An unexpected error occurred: {str(error)}"
    )


def error_response(error: DomainError) -> JSONResponse:
    """Render a domain error as ``{"detail": ..., "code": ...}``."""
    http_exception = map_exception(error)
    return JSONResponse(
        status_code=http_exception.status_code,
        content={"detail": http_exception.detail, "code": error.code},
        headers=http_exception.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for domain exceptions."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
        if isinstance(exc, FileSystemError):
            logger.error(f"File system failure on {request.method} {request.url.path}: {exc}")
        return error_response(exc)


def handle_exception(error: Exception) -> Optional[HTTPException]:
    """Map an exception to an HTTP exception when it has a known mapping.

    Args:
        error: The exception to handle

    Returns:
        An HTTPException if the error can be mapped, None otherwise
    """
    if isinstance(error, DomainError):
        return map_exception(error)
    elif isinstance(error, HTTPException):
        return error
    return None
