"""Logger factory that configures logging lazily on first use."""

import logging
from threading import Lock
from typing import Optional

from ..config.settings import get_settings
from .config import setup_logging_configuration

_logging_configured = False
_configuration_lock = Lock()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger, configuring the logging system if needed.

    Args:
        name: Logger name, normally ``__name__`` of the calling module.

    Returns:
        The named logger (the root logger when ``name`` is None).
    """
    _ensure_logging_configured()
    return logging.getLogger(name)


def configure_logging() -> None:
    """Configure logging now instead of on the first ``get_logger`` call."""
    global _logging_configured

    with _configuration_lock:
        if _logging_configured:
            return

        setup_logging_configuration()
        _logging_configured = True

        settings = get_settings()
        logging.getLogger(__name__).info(
            f"Logging configured for {settings.ENVIRONMENT.value} environment",
            extra={
                "log_level": settings.LOG_LEVEL,
                "log_format": settings.LOG_FORMAT,
                "console_enabled": settings.LOG_CONSOLE_ENABLED,
                "file_enabled": settings.LOG_FILE_ENABLED,
            },
        )


def _ensure_logging_configured() -> None:
    if not _logging_configured:
        configure_logging()
