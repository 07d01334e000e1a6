"""
Direct text extraction from the embedded text layer of a PDF (PyMuPDF).
"""

from dataclasses import dataclass

import fitz  # PyMuPDF

from clinextract.core.logging_config import get_logger
from clinextract.shared.exceptions import TextExtractionError, TypeDetectionError

logger = get_logger(__name__)


@dataclass
class DirectTextResult:
    """Text layer of a PDF."""
    text: str
    page_count: int


def open_pdf(pdf_bytes: bytes) -> "fitz.Document":
    """Open PDF bytes, raising TypeDetectionError when they are not a PDF."""
    if not pdf_bytes:
        raise TypeDetectionError("Empty PDF payload")
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise TypeDetectionError(f"Unable to parse PDF: {e}") from e


class DirectTextExtractor:
    """
    Reads the text layer page by page.

    A page whose text cannot be read contributes nothing; the document is
    then likely to be classified as an image PDF and sent to OCR.
    """

    def extract(self, pdf_bytes: bytes) -> DirectTextResult:
        doc = open_pdf(pdf_bytes)
        try:
            if doc.needs_pass and not doc.authenticate(""):
                raise TextExtractionError("PDF is password protected")

            page_count = len(doc)
            page_texts = []
            for page_num in range(page_count):
                try:
                    page_texts.append(doc[page_num].get_text("text"))
                except RuntimeError as e:
                    logger.warning("text_layer_unreadable", page=page_num + 1, error=str(e))
            return DirectTextResult(text="\n".join(page_texts).strip(), page_count=page_count)
        finally:
            doc.close()
