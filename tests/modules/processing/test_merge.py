"""Tests for the PDF merge engine."""

from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path

import pytest
from pypdf import PdfReader

from src.modules.common.exceptions import ProcessingError
from src.modules.processing.base import IncomingFile, StoredFile
from src.modules.processing.merge import PdfMergeEngine
from src.modules.processing.pdf_splitter import PdfSplitter


def stored(path: Path, extension: str, name: str = None) -> StoredFile:
    return StoredFile(
        uuid=path.stem,
        path=path,
        extension=extension,
        original_name=name or path.name,
        created_at=datetime(2025, 6, 23, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def merge_engine() -> PdfMergeEngine:
    return PdfMergeEngine()


def test_can_merge_only_pdfs_and_images(tmp_path: Path):
    assert PdfMergeEngine.can_merge([stored(tmp_path / "a.pdf", "pdf"), stored(tmp_path / "b.jpg", "jpg")])
    assert not PdfMergeEngine.can_merge([stored(tmp_path / "a.pdf", "pdf"), stored(tmp_path / "c.docx", "docx")])
    assert not PdfMergeEngine.can_merge([])


@pytest.mark.asyncio
async def test_merge_pdfs_and_images_in_order(merge_engine: PdfMergeEngine, tmp_path: Path, make_pdf, make_image):
    """Test that every PDF page and one page per image end up in the output."""
    first = tmp_path / "first.pdf"
    first.write_bytes(make_pdf(pages=2))
    photo = tmp_path / "photo.jpg"
    photo.write_bytes(make_image(300, 150))
    last = tmp_path / "last.pdf"
    last.write_bytes(make_pdf(pages=1))
    target = tmp_path / "merged.pdf"

    result = await merge_engine.merge(
        [stored(first, "pdf"), stored(photo, "jpg"), stored(last, "pdf")],
        target,
    )

    assert result == target
    reader = PdfReader(str(target))
    assert len(reader.pages) == 4
    image_page = reader.pages[2]
    assert float(image_page.mediabox.width) == pytest.approx(595.28, abs=0.01)
    assert float(image_page.mediabox.height) == pytest.approx(841.89, abs=0.01)
    assert "Page 1" in reader.pages[0].extract_text()


@pytest.mark.asyncio
async def test_merge_single_file_is_passthrough(merge_engine: PdfMergeEngine, tmp_path: Path, make_pdf):
    """Test that a lone PDF is returned as is without writing the target."""
    only = tmp_path / "only.pdf"
    only.write_bytes(make_pdf(pages=3))
    target = tmp_path / "merged.pdf"

    result = await merge_engine.merge([stored(only, "pdf")], target)

    assert result == only
    assert not target.exists()


@pytest.mark.asyncio
async def test_merge_rejects_empty_and_mixed_sets(merge_engine: PdfMergeEngine, tmp_path: Path):
    with pytest.raises(ProcessingError):
        await merge_engine.merge([], tmp_path / "out.pdf")

    with pytest.raises(ProcessingError):
        await merge_engine.merge(
            [stored(tmp_path / "a.pdf", "pdf"), stored(tmp_path / "b.docx", "docx")], tmp_path / "out.pdf"
        )


@pytest.mark.asyncio
async def test_merge_unreadable_input_raises_processing_error(merge_engine: PdfMergeEngine, tmp_path: Path):
    missing = tmp_path / "missing.pdf"
    other = tmp_path / "other.pdf"

    with pytest.raises(ProcessingError):
        await merge_engine.merge([stored(missing, "pdf"), stored(other, "pdf")], tmp_path / "out.pdf")


def test_image_page_is_a4_and_deterministic(merge_engine: PdfMergeEngine, tmp_path: Path, make_image):
    """Test that an image is drawn on one A4 page and renders identically twice."""
    wide = tmp_path / "wide.png"
    wide.write_bytes(make_image(1000, 100, image_format="PNG"))

    page_bytes = merge_engine.image_page(wide)

    reader = PdfReader(BytesIO(page_bytes))
    assert len(reader.pages) == 1
    assert float(reader.pages[0].mediabox.width) == pytest.approx(595.28, abs=0.01)
    assert merge_engine.image_page(wide) == page_bytes


@pytest.mark.asyncio
async def test_split_then_merge_keeps_page_count(storage, tmp_path: Path, make_pdf, merge_engine: PdfMergeEngine):
    """Test that splitting an N-page PDF and merging its pages gives N pages."""
    source = tmp_path / "report.pdf"
    source.write_bytes(make_pdf(pages=4))
    splitter = PdfSplitter(storage, dpi=72, quality=80)

    pages = await splitter.process(IncomingFile(path=source, filename="report.pdf"), "split")
    target = tmp_path / "rebuilt.pdf"
    await merge_engine.merge([stored(storage.full_path(page.path), "jpg") for page in pages], target)

    assert len(PdfReader(str(target)).pages) == 4
