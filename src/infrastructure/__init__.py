"""Infrastructure module for the application."""

from .config import get_settings
from .database.session import async_session, create_tables
from .storage import get_file_storage

__all__ = [
    "async_session",
    "create_tables",
    "get_file_storage",
    "get_settings",
]
