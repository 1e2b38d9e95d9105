"""Schema definitions deciding which document types and formats a dossier accepts.

A schema is a JSON file ``<name>.json`` in the definitions directory::

    {
      "open": false,
      "documents": [
        {"type": "passport", "name": "Passport", "accept": ["application/pdf", "image/*"]}
      ]
    }

``accept`` lists MIME types (``image/*`` stands for every image format and
``*`` for every known format). Types without ``accept`` allow the default
set. An ``open`` schema also accepts document types it does not list.
"""

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ...infrastructure.config.settings import get_settings
from ...infrastructure.logging import get_logger
from ..common.constants import DEFAULT_ALLOWED_EXTENSIONS, IMAGE_EXTENSIONS, MIME_TYPES
from ..common.exceptions import InvalidDocumentTypeError, InvalidFileTypeError, UnknownSchemaError
from ..common.utils.file_utils import get_extension

logger = get_logger(__name__)

_SCHEMA_NAME = re.compile(r"^[a-zA-Z0-9_-]{1,100}$")


def extensions_for_mime(mime_type: str) -> List[str]:
    """Extensions matching one ``accept`` entry, in table order."""
    mime_type = mime_type.strip().lower()
    if mime_type in ("*", "*/*"):
        return list(MIME_TYPES)
    if mime_type == "image/*":
        return list(IMAGE_EXTENSIONS)
    return [extension for extension, known in MIME_TYPES.items() if known == mime_type]


class SchemaRegistry:
    """Loads schema definitions from ``directory`` and answers policy questions."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def available(self) -> List[str]:
        return sorted(path.stem for path in self.directory.glob("*.json"))

    def get_schema(self, name: str) -> Dict[str, Any]:
        """Return the parsed definition of ``name``.

        Raises:
            UnknownSchemaError: If no valid definition exists under that name
        """
        if name in self._schemas:
            return self._schemas[name]

        if not _SCHEMA_NAME.match(name or ""):
            raise UnknownSchemaError(name)

        path = self.directory / f"{name}.json"
        try:
            definition = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise UnknownSchemaError(name)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Schema definition {path} could not be loaded: {e}")
            raise UnknownSchemaError(name) from e

        if not isinstance(definition, dict):
            logger.error(f"Schema definition {path} is not a JSON object")
            raise UnknownSchemaError(name)

        definition.setdefault("documents", [])
        self._schemas[name] = definition
        return definition

    def document_type(self, schema: str, document_type: str) -> Optional[Dict[str, Any]]:
        for entry in self.get_schema(schema)["documents"]:
            if entry.get("type") == document_type:
                return entry
        return None

    def document_type_exists(self, schema: str, document_type: str) -> bool:
        if self.document_type(schema, document_type) is not None:
            return True
        return bool(self.get_schema(schema).get("open", False))

    def allowed_extensions(self, schema: str, document_type: str) -> List[str]:
        entry = self.document_type(schema, document_type)
        accept = entry.get("accept") if entry else None
        if not accept:
            return list(DEFAULT_ALLOWED_EXTENSIONS)

        extensions: List[str] = []
        for mime_type in accept:
            for extension in extensions_for_mime(str(mime_type)):
                if extension not in extensions:
                    extensions.append(extension)
        return extensions

    def validate_upload(self, schema: str, document_type: str, filenames: Iterable[str]) -> None:
        """Check an upload batch against the schema before any processing.

        Raises:
            UnknownSchemaError: If the schema does not exist
            InvalidDocumentTypeError: If the schema does not accept the type
            InvalidFileTypeError: If a file's extension is not allowed
        """
        if not self.document_type_exists(schema, document_type):
            raise InvalidDocumentTypeError(f"Document type '{document_type}' is not allowed by schema '{schema}'")

        allowed = self.allowed_extensions(schema, document_type)
        for filename in filenames:
            extension = get_extension(filename)
            if not extension or extension not in allowed:
                raise InvalidFileTypeError(
                    f"File '{filename}' has an unsupported type. Allowed: {', '.join(allowed)}"
                )


@lru_cache
def get_schema_registry() -> SchemaRegistry:
    return SchemaRegistry(get_settings().SCHEMAS_DIR)
