"""
Custom Exceptions Module.

This module defines every exception raised by the document parser.
Each exception carries a stable machine-readable ``kind`` next to its
human-readable message, so callers (CLI, HTTP layer) can map failures
without parsing message text.

Exception Hierarchy:
    DocumentParserError (base)
    ├── InputError
    │   ├── UnsupportedFormatError          kind: UnsupportedFormat
    │   ├── FileTooLargeError               kind: FileTooLarge
    │   ├── NoReadableTextError             kind: NoReadableText
    │   └── TextExtractionError             kind: ExtractionFailed
    ├── UnsupportedDocumentTypeError        kind: UnsupportedDocumentType
    ├── ConfigurationError
    │   ├── PromptNotFoundError             kind: PromptNotFound
    │   └── ChecklistNotFoundError          kind: ChecklistNotFound
    ├── ModelError                          kind: ModelError
    │   ├── ModelAuthError                  kind: ModelAuthError
    │   ├── ModelRateLimitedError           kind: ModelRateLimited
    │   ├── ModelUnavailableError           kind: ModelUnavailable
    │   └── ModelEmptyReplyError            kind: ModelEmptyReply
    ├── InvalidResponseFormatError          kind: InvalidResponseFormat
    ├── ValidationError                     kind: ValidationError
    ├── PersistenceError                    kind: PersistenceError
    └── ExportError                         kind: ExportFailed
"""

from typing import Any, Dict, List, Optional


class DocumentParserError(Exception):
    """
    Base exception for all document parser errors.

    Attributes:
        kind: Stable machine-readable error kind.
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    kind = "DocumentParserError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as ``{kind, message, details}``."""
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(DocumentParserError):
    """Base exception for file validation and text extraction errors."""
    kind = "InputError"


class UnsupportedFormatError(InputError):
    """
    Raised when a file format is not accepted.

    Example:
        >>> raise UnsupportedFormatError("doc", ["pdf", "docx"])
    """

    kind = "UnsupportedFormat"

    def __init__(self, file_format: str, supported_formats: Optional[List[str]] = None):
        if supported_formats:
            message = (
                "Unsupported file format. Supported formats: "
                + ", ".join(supported_formats)
            )
        else:
            message = f"Unsupported file type: '{file_format}'"
        details = {
            "format": file_format,
            "supported_formats": list(supported_formats or []),
        }
        super().__init__(message, details)


class FileTooLargeError(InputError):
    """Raised when a file exceeds the size limit of its document type."""

    kind = "FileTooLarge"

    def __init__(self, size: int, max_size: int):
        limit_mb = round(max_size / (1024 * 1024))
        message = f"File size exceeds maximum limit of {limit_mb}MB"
        details = {"size": size, "max_size": max_size}
        super().__init__(message, details)


class NoReadableTextError(InputError):
    """Raised when extraction succeeds but yields no text."""

    kind = "NoReadableText"

    def __init__(self, file_format: str, reason: Optional[str] = None):
        if file_format == "pdf":
            message = "PDF contains no readable text"
        elif file_format == "docx":
            message = "DOCX contains no readable text"
        else:
            message = "No text could be extracted from the image"
        details = {"format": file_format}
        if reason:
            details["reason"] = reason
        super().__init__(message, details)


class TextExtractionError(InputError):
    """Raised when a parser library cannot open or read the file at all."""

    kind = "ExtractionFailed"

    def __init__(self, file_format: str, reason: Optional[str] = None):
        message = f"Failed to extract text from {file_format.upper()} file"
        details = {"format": file_format, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# REGISTRY / CONFIGURATION ERRORS
# =============================================================================

class UnsupportedDocumentTypeError(DocumentParserError):
    """Raised when a document type is not registered or cannot run an operation."""

    kind = "UnsupportedDocumentType"

    def __init__(self, document_type: str, operation: Optional[str] = None):
        message = f"Unsupported document type: {document_type}"
        details = {"document_type": document_type}
        if operation:
            message = f"Document type does not support {operation}: {document_type}"
            details["operation"] = operation
        super().__init__(message, details)


class ConfigurationError(DocumentParserError):
    """Base exception for gaps in the loaded configuration."""
    kind = "ConfigurationError"


class PromptNotFoundError(ConfigurationError):
    """Raised when a document type declares a template that cannot be read."""

    kind = "PromptNotFound"

    def __init__(self, document_type: str, template: Optional[str] = None):
        message = f"Prompt template not found for document type: {document_type}"
        details = {"document_type": document_type, "template": template}
        super().__init__(message, details)


class ChecklistNotFoundError(ConfigurationError):
    """Raised when no verification checklist exists for a document type."""

    kind = "ChecklistNotFound"

    def __init__(self, document_type: str):
        message = f"Verification checklist not found for document type: {document_type}"
        details = {"document_type": document_type}
        super().__init__(message, details)


# =============================================================================
# MODEL GATEWAY ERRORS
# =============================================================================

class ModelError(DocumentParserError):
    """
    Generic model provider failure.

    Also the base class of the more specific gateway errors, so
    ``except ModelError`` catches every model-side failure.
    """

    kind = "ModelError"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ModelAuthError(ModelError):
    """Raised when the provider rejects the credentials. Never retried."""

    kind = "ModelAuthError"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Model authentication failed. Check the configured API key.",
            {"reason": reason}
        )


class ModelRateLimitedError(ModelError):
    """Raised when the provider reports a rate limit."""

    kind = "ModelRateLimited"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Model rate limit exceeded. Please try again later.",
            {"reason": reason}
        )


class ModelUnavailableError(ModelError):
    """Raised on connection failures and request timeouts."""

    kind = "ModelUnavailable"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Unable to reach the model service. Check the network connection.",
            {"reason": reason}
        )


class ModelEmptyReplyError(ModelError):
    """Raised when the provider answers without any content."""

    kind = "ModelEmptyReply"

    def __init__(self, reason: Optional[str] = None):
        super().__init__("No response content from model", {"reason": reason})


# =============================================================================
# RESPONSE / REQUEST ERRORS
# =============================================================================

class InvalidResponseFormatError(DocumentParserError):
    """Raised when the model reply is not a JSON object."""

    kind = "InvalidResponseFormat"

    def __init__(self, reason: str, reply_preview: Optional[str] = None):
        message = f"Invalid response format from model: {reason}"
        details = {}
        if reply_preview is not None:
            details["reply_preview"] = reply_preview
        super().__init__(message, details)


class ValidationError(DocumentParserError):
    """Raised for malformed requests: missing fields, bad file counts."""

    kind = "ValidationError"


class PersistenceError(DocumentParserError):
    """Raised by the persistence collaborator when a store cannot be opened."""

    kind = "PersistenceError"

    def __init__(self, operation: str, reason: Optional[str] = None):
        message = f"Persistence operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class ExportError(DocumentParserError):
    """Raised when a result file cannot be written."""

    kind = "ExportFailed"

    def __init__(self, path: str, reason: Optional[str] = None):
        message = f"Could not write output file: {path}"
        super().__init__(message, {"path": path, "reason": reason})


__all__ = [
    'DocumentParserError',
    'InputError',
    'UnsupportedFormatError',
    'FileTooLargeError',
    'NoReadableTextError',
    'TextExtractionError',
    'UnsupportedDocumentTypeError',
    'ConfigurationError',
    'PromptNotFoundError',
    'ChecklistNotFoundError',
    'ModelError',
    'ModelAuthError',
    'ModelRateLimitedError',
    'ModelUnavailableError',
    'ModelEmptyReplyError',
    'InvalidResponseFormatError',
    'ValidationError',
    'PersistenceError',
    'ExportError',
]
