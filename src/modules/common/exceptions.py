"""Domain exception classes for business logic errors.

Every error carries a stable ``code`` that is returned to clients next to the
human-readable message.
"""


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    code = "E_DOMAIN_ERROR"

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ResourceNotFoundError(DomainError):
    """Raised when a requested resource cannot be found."""

    code = "E_NOT_FOUND"


class ResourceExistsError(DomainError):
    """Raised when attempting to create a resource that already exists."""

    code = "E_RESOURCE_EXISTS"


class ValidationError(DomainError):
    """Raised when data validation fails."""

    code = "E_VALIDATION_FAILED"


class PermissionDeniedError(DomainError):
    """Raised when the caller may not use the requested schema."""

    code = "E_SCHEMA_ACCESS_DENIED"


class AuthenticationError(DomainError):
    """Raised when a bearer token is missing or unknown."""

    code = "E_INVALID_TOKEN"


class FileTooLargeError(DomainError):
    """Raised when an uploaded file exceeds the configured size limit."""

    code = "E_FILE_SIZE_LIMIT"


class ProcessingError(DomainError):
    """Raised when classifying, rendering, merging or archiving fails."""

    code = "E_DOCUMENT_PROCESSING_FAILED"


class FileSystemError(DomainError):
    """Raised when reading or writing the storage area fails."""

    code = "E_FILE_SYSTEM_ERROR"


class DossierNotFoundError(ResourceNotFoundError):
    code = "E_DOSSIER_NOT_FOUND"

    def __init__(self, uuid: str):
        super().__init__(f"Dossier {uuid} not found")


class DossierExistsError(ResourceExistsError):
    code = "E_DOSSIER_EXISTS"

    def __init__(self, uuid: str):
        super().__init__(f"Dossier {uuid} already exists")


class DocumentNotFoundError(ResourceNotFoundError):
    code = "E_DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str):
        super().__init__(f"Document '{document_type}' not found")


class VersionNotFoundError(ResourceNotFoundError):
    code = "E_VERSION_NOT_FOUND"

    def __init__(self, version_id: int):
        super().__init__(f"Version {version_id} not found")


class FileNotFoundInDocumentError(ResourceNotFoundError):
    code = "E_FILE_NOT_FOUND"

    def __init__(self, file_uuid: str):
        super().__init__(f"File {file_uuid} not found")


class InvalidFileTypeError(ValidationError):
    """Raised when an uploaded file's extension is not allowed for the document type."""

    code = "E_INVALID_FILE_TYPE"


class InvalidDocumentTypeError(ValidationError):
    code = "E_INVALID_DOCUMENT_TYPE"


class UnknownSchemaError(ValidationError):
    code = "E_UNKNOWN_SCHEMA"

    def __init__(self, schema: str):
        super().__init__(f"Schema '{schema}' does not exist")
