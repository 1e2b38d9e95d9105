import json
import logging
import os
from enum import Enum
from typing import Dict, List

from pydantic_settings import BaseSettings
from starlette.config import Config

logger = logging.getLogger(__name__)

current_file_dir = os.path.dirname(os.path.realpath(__file__))
project_root = os.path.abspath(os.path.join(current_file_dir, "..", "..", ".."))
package_root = os.path.abspath(os.path.join(current_file_dir, "..", ".."))

env_paths = [
    "/code/.env",
    os.path.join(project_root, ".env"),
    "/.env",
]

env_path = next((path for path in env_paths if os.path.isfile(path)), env_paths[0])
logger.info(f"Using environment file at: {env_path}")

config = Config(env_path)


class EnvironmentOption(str, Enum):
    """Environment options for the application."""

    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    LOCAL = "local"


class EnvironmentSettings(BaseSettings):
    """Environment-related settings."""

    ENVIRONMENT: EnvironmentOption = config("ENVIRONMENT", default=EnvironmentOption.DEVELOPMENT, cast=EnvironmentOption)


class DatabaseSettings(BaseSettings):
    """Database-related settings."""

    POSTGRES_USER: str = config("POSTGRES_USER", default="postgres")
    POSTGRES_PASSWORD: str = config("POSTGRES_PASSWORD", default="postgres")
    POSTGRES_SERVER: str = config("POSTGRES_SERVER", default="localhost")
    POSTGRES_PORT: int = config("POSTGRES_PORT", default=5432, cast=int)
    POSTGRES_DB: str = config("POSTGRES_DB", default="postgres")
    POSTGRES_SYNC_PREFIX: str = config("POSTGRES_SYNC_PREFIX", default="postgresql://")
    POSTGRES_ASYNC_PREFIX: str = config("POSTGRES_ASYNC_PREFIX", default="postgresql+asyncpg://")
    CREATE_TABLES_ON_STARTUP: bool = config("CREATE_TABLES_ON_STARTUP", default=True, cast=bool)

    POSTGRES_POOL_SIZE: int = config("POSTGRES_POOL_SIZE", default=20, cast=int)
    POSTGRES_MAX_OVERFLOW: int = config("POSTGRES_MAX_OVERFLOW", default=0, cast=int)

    @property
    def DATABASE_URL(self) -> str:
        """Get the full database URL."""
        return (
            f"{self.POSTGRES_ASYNC_PREFIX}{self.POSTGRES_USER}:"
            f"{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:"
            f"{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


class CORSSettings(BaseSettings):
    """CORS-related settings."""

    CORS_ENABLED: bool = config("CORS_ENABLED", default=True, cast=bool)
    CORS_ORIGINS: str = config("CORS_ORIGINS", default="*")
    CORS_ALLOW_CREDENTIALS: bool = config("CORS_ALLOW_CREDENTIALS", default=True, cast=bool)

    @property
    def CORS_ORIGINS_LIST(self) -> List[str]:
        """Get CORS origins as a list."""
        if not self.CORS_ORIGINS:
            return ["*"]
        return [x.strip() for x in self.CORS_ORIGINS.split(",") if x.strip()]

    CORS_ALLOW_METHODS: str = config("CORS_ALLOW_METHODS", default="*")
    CORS_ALLOW_HEADERS: str = config("CORS_ALLOW_HEADERS", default="*")


class CompressionSettings(BaseSettings):
    """Compression-related settings."""

    GZIP_ENABLED: bool = config("GZIP_ENABLED", default=False, cast=bool)
    GZIP_MINIMUM_SIZE: int = config("GZIP_MINIMUM_SIZE", default=1000, cast=int)


class APIDocSettings(BaseSettings):
    """API documentation settings."""

    ENABLE_DOCS_IN_PRODUCTION: bool = config("ENABLE_DOCS_IN_PRODUCTION", default=False, cast=bool)
    DOCS_URL: str = config("DOCS_URL", default="/docs")
    REDOC_URL: str = config("REDOC_URL", default="/redoc")
    OPENAPI_URL: str = config("OPENAPI_URL", default="/openapi.json")

    API_TITLE: str = config("API_TITLE", default="")
    API_SUMMARY: str = config("API_SUMMARY", default="")
    API_DESCRIPTION: str = config("API_DESCRIPTION", default="")
    API_VERSION: str = config("API_VERSION", default="")


class APISettings(BaseSettings):
    """API-related settings."""

    API_PREFIX: str = "/api"


class AppSettings(BaseSettings):
    """Application-related settings."""

    APP_NAME: str = "Dossier Documents API"
    APP_DESCRIPTION: str = "Versioned document storage for dossiers"
    DEBUG: bool = config("DEBUG", default=False, cast=bool)
    VERSION: str = "0.1.0"


class LoggingSettings(BaseSettings):
    """Centralized logging configuration settings."""

    LOG_LEVEL: str = config("LOG_LEVEL", default="INFO")
    LOG_FORMAT: str = config("LOG_FORMAT", default="structured")  # "simple", "detailed", "structured", "json"

    LOG_CONSOLE_ENABLED: bool = config("LOG_CONSOLE_ENABLED", default=True, cast=bool)
    LOG_FILE_ENABLED: bool = config("LOG_FILE_ENABLED", default=False, cast=bool)
    LOG_FILE_PATH: str = config("LOG_FILE_PATH", default="logs/dossier-docs.log")
    LOG_FILE_MAX_SIZE: int = config("LOG_FILE_MAX_SIZE", default=10485760, cast=int)
    LOG_FILE_BACKUP_COUNT: int = config("LOG_FILE_BACKUP_COUNT", default=5, cast=int)

    LOG_DEVELOPMENT_VERBOSE: bool = config("LOG_DEVELOPMENT_VERBOSE", default=True, cast=bool)
    LOG_PRODUCTION_OPTIMIZE: bool = config("LOG_PRODUCTION_OPTIMIZE", default=True, cast=bool)

    @property
    def LOG_LEVEL_INT(self) -> int:
        """Convert string log level to integer."""
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return level_map.get(self.LOG_LEVEL.upper(), logging.INFO)


class StorageSettings(BaseSettings):
    """File storage settings.

    Temp and cache directories are resolved relative to ``STORAGE_ROOT``
    unless given as absolute paths.
    """

    STORAGE_ROOT: str = config("STORAGE_ROOT", default=os.path.join(project_root, "storage", "uploads"))
    STORAGE_TEMP_DIR: str = config("STORAGE_TEMP_DIR", default="temp")
    STORAGE_CACHE_DIR: str = config("STORAGE_CACHE_DIR", default="cache")
    RENDER_CACHE_ENABLED: bool = config("RENDER_CACHE_ENABLED", default=True, cast=bool)
    STREAM_CHUNK_SIZE: int = config("STREAM_CHUNK_SIZE", default=64 * 1024, cast=int)


class ProcessingSettings(BaseSettings):
    """Settings for page rendering and image normalization."""

    PDF_RENDER_DPI: int = config("PDF_RENDER_DPI", default=300, cast=int)
    JPEG_QUALITY: int = config("JPEG_QUALITY", default=100, cast=int)
    IMAGE_MAX_WIDTH: int = config("IMAGE_MAX_WIDTH", default=2480, cast=int)
    IMAGE_MAX_HEIGHT: int = config("IMAGE_MAX_HEIGHT", default=3508, cast=int)


class UploadSettings(BaseSettings):
    """Upload limits and document policy settings."""

    MAX_UPLOAD_FILES: int = config("MAX_UPLOAD_FILES", default=50, cast=int)
    MAX_UPLOAD_FILE_SIZE: int = config("MAX_UPLOAD_FILE_SIZE", default=50 * 1024 * 1024, cast=int)
    DEFAULT_SCHEMA: str = config("DEFAULT_SCHEMA", default="default")
    SCHEMAS_DIR: str = config("SCHEMAS_DIR", default=os.path.join(package_root, "modules", "schema", "definitions"))
    VERSION_NAME_TEMPLATE: str = config("VERSION_NAME_TEMPLATE", default="v%Y.%m.%d.%H%M")
    SERIALIZE_DOCUMENT_UPLOADS: bool = config("SERIALIZE_DOCUMENT_UPLOADS", default=True, cast=bool)


class AuthSettings(BaseSettings):
    """Schema access settings.

    ``API_TOKENS`` is a JSON object mapping bearer tokens to ability lists,
    e.g. ``{"secret": ["schema:example"]}``.
    """

    AUTH_ENABLED: bool = config("AUTH_ENABLED", default=False, cast=bool)
    API_TOKENS: str = config("API_TOKENS", default="{}")

    @property
    def API_TOKENS_MAP(self) -> Dict[str, List[str]]:
        """Parse the configured tokens, ignoring malformed input."""
        try:
            parsed = json.loads(self.API_TOKENS or "{}")
        except json.JSONDecodeError:
            logger.warning("API_TOKENS is not valid JSON, no tokens configured")
            return {}
        if not isinstance(parsed, dict):
            return {}
        return {str(token): [str(ability) for ability in abilities] for token, abilities in parsed.items()}


class Settings(
    EnvironmentSettings,
    DatabaseSettings,
    CORSSettings,
    CompressionSettings,
    APIDocSettings,
    APISettings,
    AppSettings,
    LoggingSettings,
    StorageSettings,
    ProcessingSettings,
    UploadSettings,
    AuthSettings,
):
    """Main settings class that combines all setting categories."""

    pass


settings = Settings()


def get_settings() -> Settings:
    """Get application settings.

    Returns:
        The application settings.
    """
    return settings
