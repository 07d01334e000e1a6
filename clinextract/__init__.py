"""
ClinExtract - Clinical PDF to Structured Medical Record Pipeline

Turns an uploaded clinical PDF into a structured medical record:
- PDF type detection (embedded text vs. scanned image)
- OCR fallback for scanned documents
- Disease template matching by weighted keyword scoring
- Typed field extraction (text/number/date/boolean)
"""

__version__ = "1.0.0"
__author__ = "ClinExtract Team"
