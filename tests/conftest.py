"""Test configuration and fixtures for the dossier document service."""

import io
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from reportlab.pdfgen import canvas
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from starlette.datastructures import Headers, UploadFile

os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("AUTH_ENABLED", "false")
os.environ.setdefault("GZIP_ENABLED", "false")

backend_dir = Path(__file__).parent.parent
sys.path.append(str(backend_dir))

from src.infrastructure.config.settings import get_settings  # noqa: E402
from src.infrastructure.database import DocumentLockManager  # noqa: E402
from src.infrastructure.database.session import Base, async_session  # noqa: E402
from src.infrastructure.logging import configure_testing_logging  # noqa: E402
from src.infrastructure.storage import LocalFileStorage  # noqa: E402
from src.interfaces.api.dependencies import get_processing_service, get_storage  # noqa: E402
from src.interfaces.main import app  # noqa: E402
from src.modules.document.services import DocumentService  # noqa: E402
from src.modules.dossier.services import DossierService  # noqa: E402
from src.modules.processing.classifier import FileProcessingService  # noqa: E402
from src.modules.processing.image_processor import ImageProcessor  # noqa: E402
from src.modules.processing.passthrough import PassthroughProcessor  # noqa: E402
from src.modules.processing.pdf_splitter import PdfSplitter  # noqa: E402
from src.modules.schema.registry import SchemaRegistry  # noqa: E402
from src.modules.streaming.services import DocumentStreamingService  # noqa: E402
from src.modules.version.services import VersionService  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DOCX_BYTES = b"PK\x03\x04" + b"word/document.xml" + b"\x00" * 64


@pytest.fixture(scope="session", autouse=True)
def quiet_logging():
    configure_testing_logging()


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # BEGIN comes from SQLAlchemy, not the driver, so SAVEPOINTs nest
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "storage")


@pytest.fixture
def registry() -> SchemaRegistry:
    return SchemaRegistry(get_settings().SCHEMAS_DIR)


@pytest.fixture
def processing(storage: LocalFileStorage) -> FileProcessingService:
    """Processors with a low render resolution to keep page rendering fast."""
    return FileProcessingService(
        storage,
        pdf_splitter=PdfSplitter(storage, dpi=72, quality=85),
        image_processor=ImageProcessor(storage, quality=85),
        passthrough=PassthroughProcessor(storage),
    )


@pytest.fixture
def version_service() -> VersionService:
    return VersionService()


@pytest.fixture
def dossier_service(registry: SchemaRegistry, version_service: VersionService) -> DossierService:
    return DossierService(registry, version_service)


@pytest.fixture
def document_service(
    storage: LocalFileStorage,
    processing: FileProcessingService,
    registry: SchemaRegistry,
    dossier_service: DossierService,
    version_service: VersionService,
) -> DocumentService:
    return DocumentService(
        storage=storage,
        processing=processing,
        registry=registry,
        dossier_service=dossier_service,
        version_service=version_service,
        max_files=5,
        max_file_size=5 * 1024 * 1024,
        locks=DocumentLockManager(),
    )


@pytest.fixture
def streaming_service(storage: LocalFileStorage) -> DocumentStreamingService:
    return DocumentStreamingService(storage)


@pytest_asyncio.fixture(scope="function")
async def client(test_db_engine, storage: LocalFileStorage, processing: FileProcessingService):
    """Test client whose requests each get their own session on the test database."""
    app.dependency_overrides = {}

    test_session_factory = async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[async_session] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_processing_service] = lambda: processing

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Build a PDF with ``pages`` pages, each labelled with its number."""

    def _make_pdf(pages: int = 1, width: float = 200, height: float = 280) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(width, height), invariant=1)
        for number in range(1, pages + 1):
            pdf.drawString(20, height / 2, f"Page {number}")
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    return _make_pdf


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Encode a solid-colour image in ``image_format``."""

    def _make_image(
        width: int = 120, height: int = 80, image_format: str = "JPEG", mode: str = "RGB", color=(200, 30, 30)
    ) -> bytes:
        buffer = io.BytesIO()
        Image.new(mode, (width, height), color).save(buffer, format=image_format)
        return buffer.getvalue()

    return _make_image


@pytest.fixture
def make_upload() -> Callable[..., UploadFile]:
    """Wrap bytes the way FastAPI hands uploaded files to the services."""

    def _make_upload(filename: str, data: bytes, content_type: Optional[str] = None) -> UploadFile:
        headers = Headers({"content-type": content_type}) if content_type else Headers({})
        return UploadFile(file=io.BytesIO(data), filename=filename, headers=headers)

    return _make_upload


@pytest.fixture
def docx_bytes() -> bytes:
    return DOCX_BYTES


def multipart(*files) -> List[tuple]:
    """``files=`` payload for httpx from ``(filename, data, content_type)`` triples."""
    return [("files", (name, data, content_type)) for name, data, content_type in files]


@pytest.fixture
def files_payload() -> Callable[..., List[tuple]]:
    return multipart
