"""Shared types for the upload processors."""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ...infrastructure.storage import LocalFileStorage
from ..common.utils.file_utils import get_extension


@dataclass
class IncomingFile:
    """An uploaded file spooled to local disk."""

    path: Path
    filename: str
    content_type: Optional[str] = None
    size: int = 0

    @property
    def extension(self) -> str:
        return get_extension(self.filename)


@dataclass
class ProcessedFile:
    """A normalized artifact written to storage."""

    uuid: str
    original_name: str
    extension: str
    mime_type: str
    size: int
    path: str


class FileProcessor(ABC):
    """Turns one incoming file into one or more stored artifacts.

    Implementations write their output to a temp path first and hand it to
    ``_store``, which moves it to ``<prefix>/<uuid>.<extension>``.
    """

    def __init__(self, storage: LocalFileStorage):
        self.storage = storage

    @abstractmethod
    async def process(self, incoming: IncomingFile, prefix: str) -> List[ProcessedFile]:
        """Process ``incoming`` and store the results under ``prefix``."""
        pass

    async def _store(
        self, temp_path: Path, prefix: str, extension: str, original_name: str, mime_type: str
    ) -> ProcessedFile:
        file_uuid = str(uuid.uuid4())
        relative = f"{prefix}/{file_uuid}.{extension}"
        size = await self.storage.commit(temp_path, relative)
        return ProcessedFile(
            uuid=file_uuid,
            original_name=original_name,
            extension=extension,
            mime_type=mime_type,
            size=size,
            path=relative,
        )


@dataclass
class StoredFile:
    """A persisted artifact resolved to its absolute location, as read back for downloads."""

    uuid: str
    path: Path
    extension: str
    original_name: Optional[str] = None
    mime_type: Optional[str] = None
    created_at: Optional[datetime] = None
