"""Building the downloadable form of a document version.

Exactly one live file is served as is. Several files that are all PDFs or
images are merged into one PDF; any other mix is zipped. Merged PDFs and
archives are cached under a key derived from the ordered file identifiers,
so an unchanged document is served with identical bytes and any change to
its live files produces a new key. Entries are prefixed with the version id;
rendering a new entry prunes the older ones of the same version, and
deleting a page or a version evicts them.
"""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import anyio

from ...infrastructure.logging import get_logger
from ...infrastructure.storage import LocalFileStorage
from ..common.exceptions import DocumentNotFoundError, FileSystemError
from ..file.models import File
from ..processing.archive import ArchiveBuilder
from ..processing.base import StoredFile
from ..processing.merge import PdfMergeEngine

logger = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
ZIP_MEDIA_TYPE = "application/zip"


@dataclass
class DownloadArtifact:
    """A file ready to be streamed to the client.

    ``temporary`` artifacts must be removed once the response is sent.
    """

    path: Path
    media_type: str
    filename: str
    size: int
    temporary: bool = False


class DocumentStreamingService:
    """Decide between single file, merged PDF and zip archive for a set of live files."""

    def __init__(
        self,
        storage: LocalFileStorage,
        merge_engine: PdfMergeEngine | None = None,
        archive_builder: ArchiveBuilder | None = None,
        cache_enabled: bool = True,
    ):
        self.storage = storage
        self.merge_engine = merge_engine or PdfMergeEngine()
        self.archive_builder = archive_builder or ArchiveBuilder()
        self.cache_enabled = cache_enabled

    @staticmethod
    def cache_key(kind: str, files: Sequence[File]) -> str:
        digest = hashlib.sha256(kind.encode())
        for file in files:
            digest.update(b"\n")
            digest.update(file.uuid.encode())
        return digest.hexdigest()

    async def resolve(self, file: File) -> StoredFile:
        """Map a file row to its bytes on disk.

        Raises:
            FileSystemError: If the stored bytes are missing
        """
        path = self.storage.full_path(file.path)
        if not await self.storage.exists(file.path):
            logger.error(f"Stored file {file.uuid} is missing at {file.path}")
            raise FileSystemError(f"Stored file {file.uuid} is missing")
        return StoredFile(
            uuid=file.uuid,
            path=path,
            extension=file.extension,
            original_name=file.original_name,
            mime_type=file.mime_type,
            created_at=file.created_at,
        )

    async def single(self, file: File) -> DownloadArtifact:
        stored = await self.resolve(file)
        return DownloadArtifact(
            path=stored.path,
            media_type=file.mime_type,
            filename=file.original_name or f"{file.uuid}.{file.extension}",
            size=await self.storage.size(file.path),
        )

    async def prepare(self, files: Sequence[File], document_type: str) -> DownloadArtifact:
        """Produce the download for ``files`` of a document of type ``document_type``.

        Raises:
            DocumentNotFoundError: If there are no live files
            ProcessingError: If merging or archiving fails
            FileSystemError: If stored bytes are missing or storage cannot be written
        """
        if not files:
            raise DocumentNotFoundError(document_type)

        ordered = sorted(files, key=lambda file: (file.page_number, file.id))
        if len(ordered) == 1:
            return await self.single(ordered[0])

        stored = [await self.resolve(file) for file in ordered]
        if self.merge_engine.can_merge(stored):
            kind, media_type = "pdf", PDF_MEDIA_TYPE
        else:
            kind, media_type = "zip", ZIP_MEDIA_TYPE
        filename = f"{document_type}.{kind}"

        if not self.cache_enabled:
            path = await self._render(kind, stored)
            size = (await anyio.Path(path).stat()).st_size
            return DownloadArtifact(path, media_type, filename, size, temporary=True)

        version_id = ordered[0].version_id
        cached = self.storage.cache_path(f"{version_id}-{self.cache_key(kind, ordered)}", kind)
        if not await anyio.Path(cached).is_file():
            rendered = await self._render(kind, stored)
            await self.storage.place(rendered, cached)
            logger.info(f"Rendered {kind} for '{document_type}' from {len(stored)} files")
            await self.evict(version_id, keep=cached)

        size = (await anyio.Path(cached).stat()).st_size
        return DownloadArtifact(cached, media_type, filename, size)

    async def evict(self, version_id: int, keep: Path | None = None) -> int:
        """Remove the cached downloads of a version, except ``keep``. Returns how many were removed."""
        entries = [Path(entry) async for entry in anyio.Path(self.storage.cache_root).glob(f"{version_id}-*")]
        removed = 0
        for path in entries:
            if path == keep:
                continue
            await self.storage.discard(path)
            removed += 1
        if removed:
            logger.info(f"Evicted {removed} cached downloads of version {version_id}")
        return removed

    async def _render(self, kind: str, stored: list[StoredFile]) -> Path:
        """Build the merged PDF or archive into a fresh temp path owned by the caller."""
        target = await self.storage.reserve_temp_path(f".{kind}")
        try:
            if kind == "pdf":
                await self.merge_engine.merge(stored, target)
            else:
                await self.archive_builder.build(stored, target)
        except BaseException:
            await self.storage.discard(target)
            raise
        return target
