"""Recompression of uploaded images to bounded JPEGs."""

from pathlib import Path
from typing import List

from anyio import to_thread
from PIL import Image, ImageOps

from ...infrastructure.logging import get_logger
from ..common.exceptions import ProcessingError
from ..common.utils.file_utils import get_stem, sanitize_filename
from .base import FileProcessor, IncomingFile, ProcessedFile
from .images import save_bounded_jpeg

logger = get_logger(__name__)


class ImageProcessor(FileProcessor):
    """Store an image as a single JPEG that fits within ``max_width`` x ``max_height``."""

    def __init__(self, storage, max_width: int = 2480, max_height: int = 3508, quality: int = 100):
        super().__init__(storage)
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    async def process(self, incoming: IncomingFile, prefix: str) -> List[ProcessedFile]:
        async with self.storage.temporary_path(".jpg") as temp_path:
            try:
                await to_thread.run_sync(self._convert, incoming.path, temp_path)
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                raise ProcessingError(f"Image processing failed for '{incoming.filename}': {e}") from e

            name = f"{get_stem(sanitize_filename(incoming.filename))}.jpg"
            stored = await self._store(temp_path, prefix, "jpg", name, "image/jpeg")

        logger.debug(f"Stored image {incoming.filename} as {stored.path} ({stored.size} bytes)")
        return [stored]

    def _convert(self, source: Path, target: Path) -> None:
        with Image.open(source) as image:
            image.load()
            oriented = ImageOps.exif_transpose(image) or image
            save_bounded_jpeg(oriented, target, self.max_width, self.max_height, self.quality)
