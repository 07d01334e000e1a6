"""Custom exceptions for the ClinExtract pipeline."""

from typing import Optional


class ClinExtractError(Exception):
    """Base exception for all ClinExtract errors."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        super().__init__(message)
        self.document_id = document_id


# Extraction pipeline exceptions

class ExtractionError(ClinExtractError):
    """Base exception for extraction errors."""
    pass


class TypeDetectionError(ExtractionError):
    """The bytes could not be parsed as a PDF at all."""
    pass


class TextExtractionError(ExtractionError):
    """No usable text could be read from the PDF text layer."""
    pass


class OCRExtractionError(ExtractionError):
    """OCR produced no text for any processed page."""
    pass


class InsufficientTextError(ExtractionError):
    """Extracted text is below the minimum usable length."""

    def __init__(self, message: str, text_length: int = 0, document_id: Optional[str] = None):
        super().__init__(message, document_id=document_id)
        self.text_length = text_length


class NoTemplateMatchError(ExtractionError):
    """No disease template scored above the confidence threshold."""
    pass


class FieldExtractionError(ExtractionError):
    """A single template field could not be extracted."""

    def __init__(self, message: str, field_name: str, document_id: Optional[str] = None):
        super().__init__(message, document_id=document_id)
        self.field_name = field_name


# Persistence exceptions

class PersistenceError(ClinExtractError):
    """Error in a store operation."""
    pass


class InvalidStatusTransitionError(PersistenceError):
    """Processing status change not allowed by the state machine."""

    def __init__(self, current, target, document_id: Optional[str] = None):
        super().__init__(
            f"Illegal status transition {current.value} -> {target.value}",
            document_id=document_id,
        )
        self.current = current
        self.target = target


# Configuration and validation exceptions

class ConfigurationError(ClinExtractError):
    """Error in configuration."""
    pass


class TemplateValidationError(ClinExtractError):
    """Disease template definition is invalid."""
    pass
