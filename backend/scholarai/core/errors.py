"""Error taxonomy shared by the pipeline and the HTTP layer."""

from __future__ import annotations


class ScholarError(Exception):
    """Base error carrying the HTTP status the API should answer with."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message}


class ValidationError(ScholarError):
    """Missing or invalid request field."""

    status_code = 400
    code = "VALIDATION_ERROR"


class MissingCredentials(ScholarError):
    """Missing OPENAI_API_KEY on server"""

    status_code = 400
    code = "MISSING_CREDENTIALS"


class NotFound(ScholarError):
    """Document not found"""

    status_code = 404
    code = "NOT_FOUND"


class NoDocumentsInScope(ScholarError):
    """No docs available. Upload first."""

    status_code = 400
    code = "NO_DOCUMENTS_IN_SCOPE"


class EmptyDocument(ScholarError):
    """Document is empty"""

    status_code = 400
    code = "EMPTY_DOCUMENT"


class UnsupportedFileType(ScholarError):
    status_code = 415
    code = "UNSUPPORTED_FILE_TYPE"

    def __init__(self, mime: str | None, filename: str) -> None:
        self.mime = mime
        self.filename = filename
        super().__init__(f"Unsupported file type: {mime or 'unknown'} ({filename})")


class PdfToolMissing(ScholarError):
    status_code = 501
    code = "PDFTOTEXT_MISSING"
    fix = "Install Poppler (pdftotext) and restart. On macOS: brew install poppler; on Debian/Ubuntu: apt install poppler-utils"

    def __init__(self) -> None:
        super().__init__(self.code)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.code, "fix": self.fix}


class UploadTooLarge(ScholarError):
    status_code = 413
    code = "LIMIT_FILE_SIZE"

    def __init__(self, filename: str, limit: int) -> None:
        self.filename = filename
        self.limit = limit
        super().__init__(self.code)


class ExtractionFailure(ScholarError):
    """Text extraction produced no usable output."""

    status_code = 422
    code = "EXTRACTION_FAILED"


class StoreTooLarge(ScholarError):
    status_code = 507
    code = "STORE_TOO_LARGE"

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Store would grow to {size} bytes (limit {limit}); delete documents first")


class ServiceFailure(ScholarError):
    """Upstream model service failed."""

    status_code = 502
    code = "SERVICE_FAILURE"


class MalformedModelOutput(ScholarError):
    """Invalid JSON returned by model"""

    status_code = 502
    code = "MALFORMED_MODEL_OUTPUT"


__all__ = [
    "ScholarError",
    "ValidationError",
    "MissingCredentials",
    "NotFound",
    "NoDocumentsInScope",
    "EmptyDocument",
    "UnsupportedFileType",
    "PdfToolMissing",
    "UploadTooLarge",
    "ExtractionFailure",
    "StoreTooLarge",
    "ServiceFailure",
    "MalformedModelOutput",
]
