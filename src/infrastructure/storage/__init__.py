"""File storage for uploaded and generated artifacts."""

from .local import LocalFileStorage, get_file_storage

__all__ = ["LocalFileStorage", "get_file_storage"]
