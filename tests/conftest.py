"""
ClinExtract - Test Configuration
================================

Shared pytest fixtures for all tests.
"""

import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

import fitz  # PyMuPDF
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinextract.database.memory import (
    InMemoryDocumentStore,
    InMemoryRecordStore,
    InMemoryTemplateStore,
)
from clinextract.ingest.ocr import OCREngine, PageRenderer, RecognitionResult
from clinextract.shared.models import DiseaseTemplate


# =============================================================================
# PDF Builders
# =============================================================================

def make_pdf(pages: Sequence[str]) -> bytes:
    """Build a PDF in memory; each entry is the text of one page ("" = blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_factory() -> Callable[[Sequence[str]], bytes]:
    return make_pdf


# =============================================================================
# OCR Fakes
# =============================================================================

class FakeOCREngine(OCREngine):
    """
    Returns canned text per call, in order.

    An Exception instance in `texts` is raised for that call instead.
    """

    def __init__(self, texts: Optional[List[Union[str, Exception]]] = None, default: str = ""):
        self.texts = list(texts or [])
        self.default = default
        self.calls: List[Dict] = []

    def recognize(self, image_bytes, language="eng", on_progress=None):
        self.calls.append({"size": len(image_bytes), "language": language})
        if on_progress:
            on_progress("recognizing text", 0.5)
        item = self.texts.pop(0) if self.texts else self.default
        if isinstance(item, Exception):
            raise item
        return RecognitionResult(text=item)


class FakePageRenderer(PageRenderer):
    """Writes a tiny placeholder image per page instead of rasterizing."""

    def __init__(self, pages: int = 1, fail_on: Sequence[int] = ()):
        self.pages = pages
        self.fail_on = set(fail_on)
        self.rendered: List[int] = []
        self.output_dirs: List[Path] = []

    def page_count(self, pdf_path):
        return self.pages

    def render(self, pdf_path, page_number, dpi, output_dir):
        self.output_dirs.append(Path(output_dir))
        if page_number in self.fail_on:
            raise RuntimeError(f"cannot render page {page_number}")
        self.rendered.append(page_number)
        path = Path(output_dir) / f"page-{page_number:03d}.png"
        path.write_bytes(b"\x89PNG fake")
        return path


@pytest.fixture
def fake_engine() -> FakeOCREngine:
    return FakeOCREngine()


# =============================================================================
# Templates and Stores
# =============================================================================

@pytest.fixture
def diabetes_template() -> DiseaseTemplate:
    return DiseaseTemplate.from_dict({
        "id": "tpl-diabetes",
        "name": "Diabetes",
        "keywords": ["diabetes", "blood sugar", "insulin"],
        "fields": [
            {
                "name": "blood_sugar_level",
                "field_type": "number",
                "required": True,
                "extraction_pattern": r"blood sugar[:\s]+(\d+)",
            },
            {
                "name": "insulin_type",
                "field_type": "text",
                "extraction_pattern": r"insulin[:\s]+([^\n\r]+)",
            },
        ],
    })


@pytest.fixture
def heart_template() -> DiseaseTemplate:
    return DiseaseTemplate.from_dict({
        "id": "tpl-heart",
        "name": "Heart Disease",
        "keywords": ["cardiac", "heart attack", "coronary"],
        "fields": [
            {"name": "heart_rate", "field_type": "number"},
            {"name": "chest_pain", "field_type": "boolean"},
        ],
    })


@pytest.fixture
def template_store(diabetes_template, heart_template) -> InMemoryTemplateStore:
    return InMemoryTemplateStore([diabetes_template, heart_template])


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    store.register("doc-1")
    return store


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()
