from asyncio import Event
from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Dict, List, Optional

import anyio
import fastapi
from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.openapi.utils import get_openapi

from ..modules.common.utils.error_handler import register_exception_handlers
from .config.settings import (
    DatabaseSettings,
    EnvironmentOption,
    EnvironmentSettings,
    Settings,
    get_settings,
)
from .database.session import create_tables
from .logging import configure_logging, get_logger
from .storage import get_file_storage

logger = get_logger(__name__)


async def set_threadpool_tokens(number_of_tokens: int = 100) -> None:
    """Configure the number of threadpool tokens for anyio.

    Page rendering, image conversion, merging and archiving all run in the
    default thread limiter.
    """
    limiter = anyio.to_thread.current_default_thread_limiter()
    limiter.total_tokens = number_of_tokens


async def prepare_storage() -> None:
    """Create the storage, temp and cache directories."""
    storage = get_file_storage()
    for directory in (storage.root, storage.temp_root, storage.cache_root):
        await anyio.Path(directory).mkdir(parents=True, exist_ok=True)
    logger.info(f"File storage ready at {storage.root}")


def lifespan_factory(
    settings: Settings,
    create_tables_on_startup: bool = True,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Factory to create a lifespan async context manager for a FastAPI app.

    Args:
        settings: Application settings
        create_tables_on_startup: Whether to create database tables on startup

    Returns:
        An async context manager for FastAPI's lifespan
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        initialization_complete = Event()
        app.state.initialization_complete = initialization_complete

        configure_logging()
        await set_threadpool_tokens()

        try:
            if isinstance(settings, DatabaseSettings) and create_tables_on_startup:
                await create_tables()

            await prepare_storage()

            initialization_complete.set()
            yield

        finally:
            logger.info("Application shutting down")

    return lifespan


def create_application(
    router: APIRouter,
    settings: Optional[Settings] = None,
    lifespan: Optional[Callable[[FastAPI], AbstractAsyncContextManager[None]]] = None,
    create_tables_on_startup: Optional[bool] = None,
    enable_cors: Optional[bool] = None,
    cors_origins: Optional[List[str]] = None,
    enable_docs_in_production: Optional[bool] = None,
    docs_production_dependency: Optional[Callable[..., Any]] = None,
    enable_gzip: Optional[bool] = None,
    # OpenAPI metadata
    title: Optional[str] = None,
    summary: Optional[str] = None,
    description: Optional[str] = None,
    version: Optional[str] = None,
    openapi_tags: Optional[List[Dict[str, Any]]] = None,
    **kwargs: Any,
) -> FastAPI:
    """Creates and configures a FastAPI application based on the provided settings.

    Args:
        router: The APIRouter containing the routes for the application
        settings: Application settings (uses get_settings() if None)
        lifespan: Optional lifespan function for the FastAPI app. If None, uses the default
            lifespan_factory which prepares logging, database tables and storage directories.
        create_tables_on_startup: Whether to create database tables on startup.
            Defaults to settings.CREATE_TABLES_ON_STARTUP if None.
        enable_cors: Whether to enable CORS middleware.
            Defaults to settings.CORS_ENABLED if None.
        cors_origins: List of allowed origins for CORS.
            Defaults to settings.CORS_ORIGINS if None.
        enable_docs_in_production: Whether to enable API docs in production.
            Defaults to settings.ENABLE_DOCS_IN_PRODUCTION if None.
        docs_production_dependency: Dependency to protect docs in production.
        enable_gzip: Whether to enable GZip compression middleware.
            Defaults to settings.GZIP_ENABLED if None.
        title: The title of the API.
        summary: A short summary of the API.
        description: A detailed description of the API (supports Markdown).
        version: The version of the API.
        openapi_tags: List of dictionaries containing tag metadata.
        **kwargs: Additional keyword arguments passed to FastAPI constructor

    Returns:
        A configured FastAPI application with domain exception handlers registered
    """

    if settings is None:
        settings = get_settings()

    _create_tables_on_startup = settings.CREATE_TABLES_ON_STARTUP
    if create_tables_on_startup is not None:
        _create_tables_on_startup = create_tables_on_startup

    _enable_cors = settings.CORS_ENABLED if enable_cors is None else enable_cors
    _cors_origins = settings.CORS_ORIGINS_LIST if cors_origins is None else cors_origins
    _enable_gzip = settings.GZIP_ENABLED if enable_gzip is None else enable_gzip

    _enable_docs_in_production = settings.ENABLE_DOCS_IN_PRODUCTION
    if enable_docs_in_production is not None:
        _enable_docs_in_production = enable_docs_in_production

    metadata: Dict[str, Any] = {
        "title": title or settings.API_TITLE or settings.APP_NAME,
        "description": description or settings.API_DESCRIPTION or settings.APP_DESCRIPTION,
        "version": version or settings.API_VERSION or settings.VERSION,
    }
    if summary or settings.API_SUMMARY:
        metadata["summary"] = summary or settings.API_SUMMARY
    if openapi_tags is not None:
        metadata["openapi_tags"] = openapi_tags

    metadata["docs_url"] = settings.DOCS_URL
    metadata["redoc_url"] = settings.REDOC_URL
    metadata["openapi_url"] = settings.OPENAPI_URL

    kwargs.update(metadata)

    hide_docs = (
        isinstance(settings, EnvironmentSettings)
        and settings.ENVIRONMENT == EnvironmentOption.PRODUCTION
        and not _enable_docs_in_production
    )
    if hide_docs:
        kwargs.update({"docs_url": None, "redoc_url": None, "openapi_url": None})

    if lifespan is None:
        lifespan = lifespan_factory(settings, create_tables_on_startup=_create_tables_on_startup)

    application = FastAPI(lifespan=lifespan, **kwargs)

    application.include_router(router)
    register_exception_handlers(application)

    if _enable_cors:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=_cors_origins,
            allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
            allow_methods=settings.CORS_ALLOW_METHODS.split(","),
            allow_headers=settings.CORS_ALLOW_HEADERS.split(","),
            expose_headers=["Content-Disposition"],
        )

    if _enable_gzip:
        application.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MINIMUM_SIZE)

    if hide_docs and docs_production_dependency is not None:
        docs_router = APIRouter(dependencies=[Depends(docs_production_dependency)])

        @docs_router.get("/docs", include_in_schema=False)
        async def get_swagger_documentation() -> fastapi.responses.HTMLResponse:
            return get_swagger_ui_html(openapi_url="/openapi.json", title="docs")

        @docs_router.get("/redoc", include_in_schema=False)
        async def get_redoc_documentation() -> fastapi.responses.HTMLResponse:
            return get_redoc_html(openapi_url="/openapi.json", title="redoc")

        @docs_router.get("/openapi.json", include_in_schema=False)
        async def openapi() -> Dict[str, Any]:
            return get_openapi(
                title=metadata["title"],
                version=metadata["version"],
                description=metadata["description"],
                routes=application.routes,
            )

        application.include_router(docs_router)

    return application
