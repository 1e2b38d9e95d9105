"""Dispatch of uploaded files to the processor for their type."""

from typing import List, Optional

from ...infrastructure.config.settings import Settings
from ...infrastructure.logging import get_logger
from ...infrastructure.storage import LocalFileStorage
from ..common.utils.file_utils import is_image
from .base import FileProcessor, IncomingFile, ProcessedFile
from .image_processor import ImageProcessor
from .passthrough import PassthroughProcessor
from .pdf_splitter import PdfSplitter

logger = get_logger(__name__)


class FileProcessingService:
    """Classify uploads by extension and run the matching processor.

    - ``pdf``: one JPEG per page
    - images: one bounded JPEG
    - everything else: stored unmodified
    """

    def __init__(
        self,
        storage: LocalFileStorage,
        pdf_splitter: Optional[FileProcessor] = None,
        image_processor: Optional[FileProcessor] = None,
        passthrough: Optional[FileProcessor] = None,
    ):
        self.storage = storage
        self.pdf_splitter = pdf_splitter or PdfSplitter(storage)
        self.image_processor = image_processor or ImageProcessor(storage)
        self.passthrough = passthrough or PassthroughProcessor(storage)

    @classmethod
    def from_settings(cls, storage: LocalFileStorage, settings: Settings) -> "FileProcessingService":
        return cls(
            storage,
            pdf_splitter=PdfSplitter(
                storage,
                dpi=settings.PDF_RENDER_DPI,
                quality=settings.JPEG_QUALITY,
                max_width=settings.IMAGE_MAX_WIDTH,
                max_height=settings.IMAGE_MAX_HEIGHT,
            ),
            image_processor=ImageProcessor(
                storage,
                max_width=settings.IMAGE_MAX_WIDTH,
                max_height=settings.IMAGE_MAX_HEIGHT,
                quality=settings.JPEG_QUALITY,
            ),
            passthrough=PassthroughProcessor(storage),
        )

    def processor_for(self, extension: str) -> FileProcessor:
        if extension == "pdf":
            return self.pdf_splitter
        if is_image(extension):
            return self.image_processor
        return self.passthrough

    async def process(self, incoming: IncomingFile, prefix: str) -> List[ProcessedFile]:
        """Process one file and return its artifacts in page order."""
        processor = self.processor_for(incoming.extension)
        logger.debug(f"Processing '{incoming.filename}' with {type(processor).__name__}")
        return await processor.process(incoming, prefix)
