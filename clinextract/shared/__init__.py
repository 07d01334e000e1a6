"""Shared models, enums and exceptions."""

from .enums import FieldType, OutcomeStatus, PDFType, ProcessingStatus
from .models import (
    DiseaseTemplate,
    ExtractedData,
    FieldSpec,
    FieldValue,
    KeywordMatch,
    MedicalRecord,
    Outcome,
    RunSummary,
)
