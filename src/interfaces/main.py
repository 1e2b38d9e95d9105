from ..infrastructure.app_factory import create_application
from ..infrastructure.config.settings import get_settings
from ..interfaces.api import router as api_router

settings = get_settings()

app = create_application(
    router=api_router,
    settings=settings,
    title="Dossier Documents API",
    summary="Versioned document storage for dossiers",
    description="""
    # Dossier Documents API

    Stores the documents of a dossier as versioned sets of pages:

    * **Uploads**: PDFs are split into page images, images normalized, office files kept as is
    * **Versions**: every document keeps a history of versions with one current version
    * **Downloads**: pages come back as one merged PDF, the single stored file, or a ZIP archive
    * **Schemas**: each dossier's schema decides which document types and formats it accepts
    """,
    openapi_tags=[
        {"name": "Dossiers", "description": "Dossiers and their document summaries"},
        {"name": "Documents", "description": "Upload, download and page access"},
        {"name": "Versions", "description": "Version history of a document"},
        {"name": "Schemas", "description": "Schema definitions"},
    ],
)
