"""Local filesystem storage.

Artifacts are addressed by paths relative to the storage root, always using
forward slashes, e.g. ``2025/06/23/<dossier uuid>/<file uuid>.jpg``. Files are
produced in the temp area and moved into place with ``os.replace`` so a
half-written artifact is never visible under its final path.
"""

import os
import shutil
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol

import anyio
from anyio import to_thread

from ...modules.common.exceptions import FileSystemError, FileTooLargeError
from ..config.settings import get_settings
from ..logging import get_logger

logger = get_logger(__name__)


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


class LocalFileStorage:
    """Storage area rooted at a local directory.

    Args:
        root: Directory holding every stored artifact
        temp_dir: Scratch directory, relative to ``root`` unless absolute
        cache_dir: Directory for rendered downloads, relative to ``root`` unless absolute
        chunk_size: Read size used when streaming and spooling
    """

    def __init__(self, root: str | Path, temp_dir: str = "temp", cache_dir: str = "cache", chunk_size: int = 64 * 1024):
        self.root = Path(root).resolve()
        self.temp_root = self._under_root(temp_dir)
        self.cache_root = self._under_root(cache_dir)
        self.chunk_size = chunk_size

    def _under_root(self, directory: str) -> Path:
        path = Path(directory)
        return path if path.is_absolute() else self.root / path

    def full_path(self, relative: str) -> Path:
        """Absolute path for a stored artifact.

        Raises:
            FileSystemError: If the path escapes the storage root
        """
        candidate = (self.root / relative).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise FileSystemError(f"Path '{relative}' is outside the storage area")
        return candidate

    def cache_path(self, key: str, extension: str) -> Path:
        return self.cache_root / f"{key}.{extension}"

    @asynccontextmanager
    async def temporary_path(self, suffix: str = "") -> AsyncIterator[Path]:
        """Yield a fresh path in the temp area and remove it on exit.

        The file itself is not created; whatever the caller writes there is
        deleted when the block exits, successfully or not.
        """
        try:
            await anyio.Path(self.temp_root).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Cannot create temp directory {self.temp_root}: {e}") from e

        path = self.temp_root / f"{uuid.uuid4().hex}{suffix}"
        try:
            yield path
        finally:
            try:
                await anyio.Path(path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove temp file {path}: {e}")

    async def reserve_temp_path(self, suffix: str = "") -> Path:
        """Fresh temp path whose cleanup belongs to the caller (see ``discard``)."""
        try:
            await anyio.Path(self.temp_root).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Cannot create temp directory {self.temp_root}: {e}") from e
        return self.temp_root / f"{uuid.uuid4().hex}{suffix}"

    async def discard(self, path: Path) -> None:
        """Remove a temp or cache file by absolute path, logging on failure."""
        try:
            await anyio.Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")

    async def spool(self, source: AsyncReadable, destination: Path, max_size: Optional[int] = None) -> int:
        """Copy an async byte source (e.g. an ``UploadFile``) into ``destination``.

        Returns:
            Number of bytes written

        Raises:
            FileTooLargeError: If more than ``max_size`` bytes arrive
            FileSystemError: If the destination cannot be written
        """
        written = 0
        try:
            async with await anyio.open_file(destination, "wb") as target:
                while True:
                    chunk = await source.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_size is not None and written > max_size:
                        raise FileTooLargeError(f"File exceeds the maximum size of {max_size} bytes")
                    await target.write(chunk)
        except OSError as e:
            raise FileSystemError(f"Cannot write {destination}: {e}") from e
        return written

    async def commit(self, temp_path: Path, relative: str) -> int:
        """Move a finished temp file to ``relative`` and return its size."""
        destination = self.full_path(relative)

        def _move() -> int:
            destination.parent.mkdir(parents=True, exist_ok=True)
            try:
                os.replace(temp_path, destination)
            except OSError:
                # temp area on another filesystem
                shutil.move(str(temp_path), destination)
            return destination.stat().st_size

        try:
            return await to_thread.run_sync(_move)
        except OSError as e:
            raise FileSystemError(f"Cannot store {relative}: {e}") from e

    async def place(self, temp_path: Path, destination: Path) -> None:
        """Atomically move a temp file to an absolute destination (cache entries)."""

        def _move() -> None:
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.replace(temp_path, destination)

        try:
            await to_thread.run_sync(_move)
        except OSError as e:
            raise FileSystemError(f"Cannot store {destination}: {e}") from e

    async def exists(self, relative: str) -> bool:
        return await anyio.Path(self.full_path(relative)).is_file()

    async def size(self, relative: str) -> int:
        try:
            stat = await anyio.Path(self.full_path(relative)).stat()
        except OSError as e:
            raise FileSystemError(f"Cannot stat {relative}: {e}") from e
        return stat.st_size

    async def remove(self, relative: str) -> None:
        """Delete a stored artifact, logging instead of raising on failure."""
        try:
            await anyio.Path(self.full_path(relative)).unlink(missing_ok=True)
        except (OSError, FileSystemError) as e:
            logger.warning(f"Failed to remove stored file {relative}: {e}")

    async def iter_bytes(self, path: Path) -> AsyncIterator[bytes]:
        """Stream a file in ``chunk_size`` pieces."""
        try:
            async with await anyio.open_file(path, "rb") as source:
                while True:
                    chunk = await source.read(self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise FileSystemError(f"Cannot read {path}: {e}") from e


@lru_cache
def get_file_storage() -> LocalFileStorage:
    """Process-wide storage configured from settings."""
    settings = get_settings()
    return LocalFileStorage(
        root=settings.STORAGE_ROOT,
        temp_dir=settings.STORAGE_TEMP_DIR,
        cache_dir=settings.STORAGE_CACHE_DIR,
        chunk_size=settings.STREAM_CHUNK_SIZE,
    )
