"""Merging of stored pages back into a single PDF."""

from io import BytesIO
from pathlib import Path
from typing import Sequence

from anyio import to_thread
from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ...infrastructure.logging import get_logger
from ..common.constants import A4_HEIGHT, A4_WIDTH
from ..common.exceptions import ProcessingError
from ..common.utils.file_utils import is_image, is_mergeable
from .base import StoredFile
from .images import flatten_to_rgb

logger = get_logger(__name__)


class PdfMergeEngine:
    """Combine PDFs and images, in the given order, into one PDF.

    PDF inputs contribute all of their pages. Each image is drawn on its own
    A4 page, scaled by the smaller of the width and height ratios and centered.
    """

    def __init__(self, page_width: float = A4_WIDTH, page_height: float = A4_HEIGHT):
        self.page_width = page_width
        self.page_height = page_height

    @staticmethod
    def can_merge(files: Sequence[StoredFile]) -> bool:
        return bool(files) and all(is_mergeable(f.extension) for f in files)

    async def merge(self, files: Sequence[StoredFile], target: Path) -> Path:
        """Merge ``files`` into ``target``.

        Returns:
            The path holding the result: the only input itself when a single
            file is given, ``target`` otherwise.

        Raises:
            ProcessingError: If the set is empty, contains a non-mergeable
                file, or an input cannot be read
        """
        if not files:
            raise ProcessingError("No files to merge")
        if not self.can_merge(files):
            raise ProcessingError("File set contains types that cannot be merged into a PDF")
        if len(files) == 1:
            return files[0].path

        try:
            await to_thread.run_sync(self._merge, list(files), target)
        except (PyPdfError, OSError, ValueError) as e:
            raise ProcessingError(f"PDF merge failed: {e}") from e

        logger.debug(f"Merged {len(files)} files into {target}")
        return target

    def _merge(self, files: list[StoredFile], target: Path) -> None:
        writer = PdfWriter()

        for stored in files:
            if stored.extension.lower() == "pdf":
                reader = PdfReader(str(stored.path))
                for page in reader.pages:
                    writer.add_page(page)
            elif is_image(stored.extension):
                image_pdf = PdfReader(BytesIO(self.image_page(stored.path)))
                writer.add_page(image_pdf.pages[0])

        with open(target, "wb") as output:
            writer.write(output)

    def image_page(self, image_path: Path) -> bytes:
        """Render one image onto a fixed-size page and return the PDF bytes."""
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height), invariant=1)

        with Image.open(image_path) as image:
            rgb = flatten_to_rgb(image)
            image_width, image_height = rgb.size
            scale = min(self.page_width / image_width, self.page_height / image_height)
            width = image_width * scale
            height = image_height * scale
            x = (self.page_width - width) / 2
            y = (self.page_height - height) / 2
            pdf.drawImage(ImageReader(rgb), x, y, width=width, height=height)

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()
