"""Storage of office documents and archives without conversion."""

import shutil
from typing import List

from anyio import to_thread

from ..common.exceptions import FileSystemError
from ..common.utils.file_utils import get_mime_type, sanitize_filename
from .base import FileProcessor, IncomingFile, ProcessedFile


class PassthroughProcessor(FileProcessor):
    """Copy the upload byte for byte, keeping its extension and MIME type."""

    async def process(self, incoming: IncomingFile, prefix: str) -> List[ProcessedFile]:
        extension = incoming.extension or "bin"
        mime_type = get_mime_type(extension, incoming.content_type)

        async with self.storage.temporary_path(f".{extension}") as temp_path:
            try:
                await to_thread.run_sync(shutil.copyfile, incoming.path, temp_path)
            except OSError as e:
                raise FileSystemError(f"Cannot copy '{incoming.filename}': {e}") from e

            stored = await self._store(temp_path, prefix, extension, sanitize_filename(incoming.filename), mime_type)

        return [stored]
