"""
PDF type detection: does the document carry usable embedded text, or is it
a scan that must go through OCR?
"""

from dataclasses import dataclass
from typing import Optional

from clinextract.ingest.text_extractor import DirectTextExtractor
from clinextract.shared.enums import PDFType

DEFAULT_MIN_TEXT_CHARS = 50


@dataclass
class PDFTypeInfo:
    """Classification plus what the text layer yielded."""
    pdf_type: PDFType
    text: str
    page_count: int

    @property
    def is_text(self) -> bool:
        return self.pdf_type is PDFType.TEXT


class PDFTypeDetector:
    """
    Classifies a PDF as `text` or `image` by text-layer yield.

    Raises TypeDetectionError when the bytes are not a parseable PDF.
    """

    def __init__(
        self,
        min_text_chars: int = DEFAULT_MIN_TEXT_CHARS,
        extractor: Optional[DirectTextExtractor] = None
    ):
        self.min_text_chars = min_text_chars
        self.extractor = extractor or DirectTextExtractor()

    def detect(self, pdf_bytes: bytes) -> PDFTypeInfo:
        result = self.extractor.extract(pdf_bytes)
        text = result.text.strip()
        pdf_type = PDFType.IMAGE if len(text) < self.min_text_chars else PDFType.TEXT
        return PDFTypeInfo(pdf_type=pdf_type, text=text, page_count=result.page_count)
