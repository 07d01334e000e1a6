"""
ClinExtract - OCR Fallback
==========================

Rasterizes PDF pages and runs optical character recognition on them.

- Pages are processed one at a time, up to a hard page cap
- A failing page is recorded and skipped; the rest of the document continues
- Rendered page images live in a temporary directory that is removed on
  every exit path, including total failure
"""

import io
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from clinextract.core.logging_config import get_logger
from clinextract.shared.exceptions import OCRExtractionError
from clinextract.shared.enums import OutcomeStatus
from clinextract.shared.models import Outcome

logger = get_logger(__name__)

DEFAULT_MAX_PAGES = 10
DEFAULT_DPI = 300
DEFAULT_LANGUAGE = "eng"

ProgressCallback = Callable[[str, float], None]


# =============================================================================
# OCR ENGINE
# =============================================================================

@dataclass
class RecognitionResult:
    """Text recognized from one image."""
    text: str
    confidence: Optional[float] = None


class OCREngine(ABC):
    """Abstract OCR engine."""

    @abstractmethod
    def recognize(
        self,
        image_bytes: bytes,
        language: str = DEFAULT_LANGUAGE,
        on_progress: Optional[ProgressCallback] = None
    ) -> RecognitionResult:
        """Recognize text in an encoded image (PNG)."""


class TesseractEngine(OCREngine):
    """
    Tesseract OCR through pytesseract.

    Requires the Tesseract binary (apt-get install tesseract-ocr).
    """

    def __init__(self, tesseract_cmd: Optional[str] = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def recognize(
        self,
        image_bytes: bytes,
        language: str = DEFAULT_LANGUAGE,
        on_progress: Optional[ProgressCallback] = None
    ) -> RecognitionResult:
        if on_progress:
            on_progress("recognizing text", 0.0)
        with Image.open(io.BytesIO(image_bytes)) as image:
            text = pytesseract.image_to_string(image, lang=language)
        if on_progress:
            on_progress("recognizing text", 1.0)
        return RecognitionResult(text=text)


# =============================================================================
# PAGE RENDERING
# =============================================================================

class PageRenderer(ABC):
    """Renders single PDF pages to image files."""

    @abstractmethod
    def page_count(self, pdf_path: Path) -> int:
        """Number of pages in the document."""

    @abstractmethod
    def render(self, pdf_path: Path, page_number: int, dpi: int, output_dir: Path) -> Path:
        """Render 1-based `page_number` into `output_dir`; return the image path."""


class PyMuPDFPageRenderer(PageRenderer):
    """Page rasterization with PyMuPDF pixmaps."""

    def page_count(self, pdf_path: Path) -> int:
        with fitz.open(pdf_path) as doc:
            return len(doc)

    def render(self, pdf_path: Path, page_number: int, dpi: int, output_dir: Path) -> Path:
        image_path = output_dir / f"page-{page_number:03d}.png"
        with fitz.open(pdf_path) as doc:
            pix = doc[page_number - 1].get_pixmap(dpi=dpi)
            pix.save(str(image_path))
        return image_path


# =============================================================================
# OCR EXTRACTOR
# =============================================================================

@dataclass
class OCRExtraction:
    """Combined OCR text with one outcome per attempted page."""
    text: str
    page_count: int
    pages_processed: int
    outcomes: List[Outcome] = field(default_factory=list)

    @property
    def pages_recognized(self) -> int:
        return sum(1 for o in self.outcomes if o.status is OutcomeStatus.OK)


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


class OCRExtractor:
    """
    OCR fallback for image-only PDFs.

    Usage:
        extractor = OCRExtractor(TesseractEngine(), max_pages=10, dpi=300)
        result = extractor.extract(pdf_path=Path("scan.pdf"))
        print(result.text)
    """

    def __init__(
        self,
        engine: OCREngine,
        renderer: Optional[PageRenderer] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        dpi: int = DEFAULT_DPI,
        language: str = DEFAULT_LANGUAGE,
    ):
        self.engine = engine
        self.renderer = renderer or PyMuPDFPageRenderer()
        self.max_pages = max_pages
        self.dpi = dpi
        self.language = language

    def extract(
        self,
        pdf_path: Optional[Union[str, Path]] = None,
        pdf_bytes: Optional[bytes] = None,
        page_count: Optional[int] = None,
    ) -> OCRExtraction:
        """
        Recognize text page by page.

        Args:
            pdf_path: PDF on disk; when omitted `pdf_bytes` is spilled into the
                temporary working directory
            pdf_bytes: Raw PDF, used only without `pdf_path`
            page_count: Declared page count; read from the PDF when omitted

        Raises:
            OCRExtractionError: no text was recognized on any processed page
        """
        if pdf_path is None and pdf_bytes is None:
            raise ValueError("pdf_path or pdf_bytes is required")

        outcomes: List[Outcome] = []
        parts: List[str] = []

        with tempfile.TemporaryDirectory(prefix="clinextract-ocr-") as tmp:
            workdir = Path(tmp)
            if pdf_path is None:
                source = workdir / "source.pdf"
                source.write_bytes(pdf_bytes)
            else:
                source = Path(pdf_path)

            total_pages = page_count if page_count is not None else self.renderer.page_count(source)
            pages_to_process = min(total_pages, self.max_pages)
            if total_pages > self.max_pages:
                logger.info(
                    "ocr_page_cap_applied",
                    total_pages=total_pages,
                    max_pages=self.max_pages,
                )

            for page_number in range(1, pages_to_process + 1):
                unit = f"page {page_number}"
                try:
                    text = self._recognize_page(source, page_number, workdir)
                except Exception as e:
                    logger.warning("ocr_page_failed", page=page_number, error=str(e))
                    outcomes.append(Outcome.error(unit, str(e)))
                    continue

                if not text.strip():
                    outcomes.append(Outcome.skipped(unit, "no text recognized"))
                    continue

                parts.append(f"\n{page_marker(page_number)}\n{text}\n")
                outcomes.append(Outcome.ok(unit))
                logger.debug("ocr_page_done", page=page_number, chars=len(text))

        combined = "".join(parts).strip()
        if not combined:
            raise OCRExtractionError(
                f"No text could be extracted from {pages_to_process} page image(s)"
            )

        return OCRExtraction(
            text=combined,
            page_count=total_pages,
            pages_processed=pages_to_process,
            outcomes=outcomes,
        )

    def _recognize_page(self, source: Path, page_number: int, workdir: Path) -> str:
        image_path = self.renderer.render(source, page_number, self.dpi, workdir)
        try:
            image_bytes = Path(image_path).read_bytes()
        finally:
            Path(image_path).unlink(missing_ok=True)

        def on_progress(status: str, progress: float) -> None:
            logger.debug("ocr_progress", page=page_number, status=status, progress=round(progress * 100))

        result = self.engine.recognize(image_bytes, self.language, on_progress=on_progress)
        return result.text or ""
