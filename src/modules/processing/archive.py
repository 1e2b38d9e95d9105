"""Zip archives of heterogeneous document pages."""

import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import List, Sequence, Tuple

from anyio import to_thread

from ...infrastructure.logging import get_logger
from ..common.exceptions import ProcessingError
from ..common.utils.file_utils import sanitize_filename
from .base import StoredFile

logger = get_logger(__name__)

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class ArchiveBuilder:
    """Pack files into a zip under their original names.

    A file whose name is missing, or already taken by an earlier entry, is
    stored as ``<uuid>.<extension>``. Entry timestamps come from the files'
    creation time so identical inputs give identical archives.
    """

    def __init__(self, compress_level: int = 9):
        self.compress_level = compress_level

    @staticmethod
    def entry_names(files: Sequence[StoredFile]) -> List[str]:
        names: List[str] = []
        taken: set[str] = set()

        for stored in files:
            name = sanitize_filename(stored.original_name) if stored.original_name else ""
            if not name or name in taken:
                name = f"{stored.uuid}.{stored.extension}"
            taken.add(name)
            names.append(name)

        return names

    async def build(self, files: Sequence[StoredFile], target: Path) -> Path:
        if not files:
            raise ProcessingError("No files to archive")

        try:
            await to_thread.run_sync(self._build, list(files), target)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise ProcessingError(f"Archive creation failed: {e}") from e

        logger.debug(f"Archived {len(files)} files into {target}")
        return target

    def _build(self, files: list[StoredFile], target: Path) -> None:
        names = self.entry_names(files)

        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=self.compress_level) as archive:
            for stored, name in zip(files, names):
                info = zipfile.ZipInfo(name, date_time=_zip_timestamp(stored.created_at))
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                with open(stored.path, "rb") as source, archive.open(info, "w") as entry:
                    shutil.copyfileobj(source, entry)


def _zip_timestamp(created_at: datetime | None) -> Tuple[int, int, int, int, int, int]:
    if created_at is None or created_at.year < 1980:
        return _ZIP_EPOCH
    return (created_at.year, created_at.month, created_at.day, created_at.hour, created_at.minute, created_at.second)
