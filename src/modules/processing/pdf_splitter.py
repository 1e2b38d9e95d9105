"""Splitting uploaded PDFs into one JPEG per page."""

from pathlib import Path
from typing import List

import pypdfium2 as pdfium
from anyio import to_thread
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ...infrastructure.logging import get_logger
from ..common.exceptions import ProcessingError
from ..common.utils.file_utils import pdf_page_name, sanitize_filename
from .base import FileProcessor, IncomingFile, ProcessedFile
from .images import save_bounded_jpeg

logger = get_logger(__name__)


class PdfSplitter(FileProcessor):
    """Render every page of a PDF to a JPEG at ``dpi``.

    A page that fails to render is logged and skipped; the remaining pages
    are still stored. An unreadable document fails as a whole.
    """

    def __init__(
        self, storage, dpi: int = 300, quality: int = 100, max_width: int = 2480, max_height: int = 3508
    ):
        super().__init__(storage)
        self.dpi = dpi
        self.quality = quality
        self.max_width = max_width
        self.max_height = max_height

    async def process(self, incoming: IncomingFile, prefix: str) -> List[ProcessedFile]:
        try:
            page_count = await to_thread.run_sync(count_pages, incoming.path)
        except (PyPdfError, OSError, ValueError) as e:
            raise ProcessingError(f"Cannot read PDF '{incoming.filename}': {e}") from e

        if page_count == 0:
            raise ProcessingError(f"PDF '{incoming.filename}' has no pages")

        try:
            document = await to_thread.run_sync(pdfium.PdfDocument, str(incoming.path))
        except (pdfium.PdfiumError, OSError, ValueError) as e:
            raise ProcessingError(f"Cannot open PDF '{incoming.filename}' for rendering: {e}") from e

        base_name = sanitize_filename(incoming.filename)
        outputs: List[ProcessedFile] = []

        try:
            for index in range(page_count):
                outputs.extend(await self._split_page(document, incoming, index, base_name, prefix))
        except BaseException:
            for stored in outputs:
                await self.storage.remove(stored.path)
            raise
        finally:
            document.close()

        logger.info(
            f"Split PDF '{incoming.filename}' into {len(outputs)} of {page_count} pages",
            extra={"pages_total": page_count, "pages_rendered": len(outputs)},
        )
        return outputs

    async def _split_page(
        self, document: pdfium.PdfDocument, incoming: IncomingFile, index: int, base_name: str, prefix: str
    ) -> List[ProcessedFile]:
        page_number = index + 1
        async with self.storage.temporary_path(".jpg") as temp_path:
            try:
                await to_thread.run_sync(self._render_page, document, index, temp_path)
            except (pdfium.PdfiumError, OSError, ValueError) as e:
                logger.warning(f"Skipping page {page_number} of '{incoming.filename}': {e}")
                return []

            stored = await self._store(temp_path, prefix, "jpg", pdf_page_name(base_name, page_number), "image/jpeg")
        return [stored]

    def _render_page(self, document: pdfium.PdfDocument, index: int, target: Path) -> None:
        page = document[index]
        try:
            image = page.render(scale=self.dpi / 72).to_pil()
            save_bounded_jpeg(image, target, self.max_width, self.max_height, self.quality)
        finally:
            page.close()


def count_pages(path: Path) -> int:
    return len(PdfReader(str(path)).pages)
