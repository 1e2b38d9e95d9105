"""Logging for the dossier document service.

Every module obtains its logger through ``get_logger(__name__)``; the first
call configures the root logger from the ``LOG_*`` settings and the current
``ENVIRONMENT``.

Usage:
    ```python
    from src.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Upload stored", extra={"dossier": dossier_uuid, "pages": 3})
    ```
"""

from .config import configure_testing_logging, setup_logging_configuration
from .factory import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "configure_testing_logging",
    "get_logger",
    "setup_logging_configuration",
]
