"""
ClinExtract - Core Module

Pure document-understanding logic: normalization, template matching and
typed field extraction.
"""

from .normalizer import normalize_text

from .disease_matcher import (
    DiseaseMatch,
    DiseaseMatcher,
    TemplateScore,
    compute_confidence,
)

from .field_extractor import (
    FieldExtractionResult,
    FieldExtractor,
)

__all__ = [
    "normalize_text",
    "DiseaseMatch",
    "DiseaseMatcher",
    "TemplateScore",
    "compute_confidence",
    "FieldExtractionResult",
    "FieldExtractor",
]
