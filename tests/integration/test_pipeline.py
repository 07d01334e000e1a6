"""
ClinExtract - Pipeline Integration Tests
========================================

Full document runs over real PDFs (built with PyMuPDF), in-memory stores
and a fake OCR engine.
"""

from unittest.mock import AsyncMock

import pytest

from clinextract.database.memory import InMemoryTemplateStore
from clinextract.database.repositories.base import FileSystemDocumentSource
from clinextract.ingest.config import PipelineConfig
from clinextract.ingest.dispatcher import ProcessingDispatcher
from clinextract.ingest.pipeline import DocumentProcessingPipeline
from clinextract.shared.enums import OutcomeStatus, PDFType, ProcessingStatus
from clinextract.shared.exceptions import (
    InsufficientTextError,
    OCRExtractionError,
    PersistenceError,
    TypeDetectionError,
)
from clinextract.shared.models import DiseaseTemplate

from tests.conftest import FakeOCREngine, make_pdf

DIABETES_TEXT = "Patient has diabetes, blood sugar: 180, insulin: Humalog"
UNRELATED_LINE = "Routine orthopedic follow up visit, knee range of motion good."

PENDING, PROCESSING, COMPLETED, FAILED = (
    ProcessingStatus.PENDING,
    ProcessingStatus.PROCESSING,
    ProcessingStatus.COMPLETED,
    ProcessingStatus.FAILED,
)


@pytest.fixture
def ocr_engine():
    return FakeOCREngine()


@pytest.fixture
def pipeline(template_store, document_store, record_store, ocr_engine):
    return DocumentProcessingPipeline(
        template_store=template_store,
        document_store=document_store,
        record_store=record_store,
        ocr_engine=ocr_engine,
        config=PipelineConfig(ocr_dpi=36),
    )


# =============================================================================
# Successful runs
# =============================================================================

class TestSuccessfulRuns:

    @pytest.mark.asyncio
    async def test_diabetes_report(self, pipeline, document_store, record_store):
        result = await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))

        assert result.success is True
        assert result.status is COMPLETED
        assert result.pdf_type is PDFType.TEXT
        assert result.disease == "Diabetes"
        assert result.confidence == 100.0
        assert result.extracted_data_count == 2

        record = result.record
        assert record.extracted_data.value("blood_sugar_level") == 180.0
        assert record.extracted_data.value("insulin_type") == "Humalog"
        assert record.patient_id == "patient-1"
        assert record.template_id == "tpl-diabetes"

        assert await record_store.list_for_document("doc-1") == [record]
        assert document_store.history["doc-1"] == [PENDING, PROCESSING, COMPLETED]
        assert DIABETES_TEXT in document_store.extracted_text("doc-1")
        assert document_store.processed_at("doc-1") is not None

    @pytest.mark.asyncio
    async def test_result_serializes(self, pipeline):
        result = await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))
        data = result.to_dict()

        assert data["status"] == "completed"
        assert data["medical_record"]["extracted_data"]["blood_sugar_level"] == 180.0
        assert data["summary"]["fields"] == {"ok": 2, "skipped": 0, "error": 0}
        assert data["extracted_text"] is None

    @pytest.mark.asyncio
    async def test_scanned_document_goes_through_ocr(self, pipeline, ocr_engine, document_store):
        ocr_engine.texts = [DIABETES_TEXT, RuntimeError("smudged page")]

        result = await pipeline.process_document("doc-1", "patient-1", make_pdf(["", ""]))

        assert result.success is True
        assert result.pdf_type is PDFType.IMAGE
        assert [o.status for o in result.summary.pages] == [OutcomeStatus.OK, OutcomeStatus.ERROR]
        assert "--- Page 1 ---" in document_store.extracted_text("doc-1")
        assert result.record.extracted_data.value("blood_sugar_level") == 180.0

    @pytest.mark.asyncio
    async def test_loads_from_document_source(
        self, tmp_path, template_store, document_store, record_store, ocr_engine
    ):
        (tmp_path / "report.pdf").write_bytes(make_pdf([DIABETES_TEXT]))
        document_store.register("report.pdf")
        pipeline = DocumentProcessingPipeline(
            template_store=template_store,
            document_store=document_store,
            record_store=record_store,
            ocr_engine=ocr_engine,
            document_source=FileSystemDocumentSource(tmp_path),
        )

        result = await pipeline.process_document("report.pdf", "patient-1")

        assert result.success is True
        assert result.record.document_id == "report.pdf"

    @pytest.mark.asyncio
    async def test_failing_field_pattern_still_persists_record(
        self, document_store, record_store, ocr_engine
    ):
        template = DiseaseTemplate.from_dict({
            "id": "tpl-1",
            "name": "Diabetes",
            "keywords": ["diabetes", "blood sugar", "insulin"],
            "fields": [
                {"name": "blood_sugar_level", "field_type": "number",
                 "extraction_pattern": r"blood sugar[:\s]+(\d+)"},
                {"name": "insulin_type", "field_type": "text",
                 "extraction_pattern": r"insulin[:\s+([^\n\r]+)"},
            ],
        })
        pipeline = DocumentProcessingPipeline(
            template_store=InMemoryTemplateStore([template]),
            document_store=document_store,
            record_store=record_store,
            ocr_engine=ocr_engine,
        )

        result = await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))

        assert result.success is True
        data = record_store.all()[0].extracted_data
        assert data.value("blood_sugar_level") == 180.0
        assert "insulin_type" not in data
        assert result.summary.field_counts == {"ok": 1, "skipped": 0, "error": 1}

    @pytest.mark.asyncio
    async def test_oversized_pattern_does_not_fail_document(
        self, document_store, record_store, ocr_engine
    ):
        template = DiseaseTemplate.from_dict({
            "id": "tpl-1",
            "name": "Diabetes",
            "keywords": ["diabetes", "blood sugar", "insulin"],
            "fields": [
                {"name": "blood_sugar_level", "field_type": "number",
                 "extraction_pattern": r"blood sugar[:\s]+(\d+)"},
                {"name": "insulin_type", "field_type": "text",
                 "extraction_pattern": r"a{99999999999}"},
            ],
        })
        pipeline = DocumentProcessingPipeline(
            template_store=InMemoryTemplateStore([template]),
            document_store=document_store,
            record_store=record_store,
            ocr_engine=ocr_engine,
        )

        result = await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))

        assert result.success is True
        assert document_store.history["doc-1"] == [PENDING, PROCESSING, COMPLETED]
        data = record_store.all()[0].extracted_data
        assert data.value("blood_sugar_level") == 180.0
        assert "insulin_type" not in data

    @pytest.mark.asyncio
    async def test_keywords_wrapped_across_lines(self, pipeline):
        pdf = make_pdf([
            "Patient follow up for diabetes management.\n"
            "Fasting blood\nsugar: 150 today, insulin\nadjusted."
        ])

        result = await pipeline.process_document("doc-1", "patient-1", pdf)

        assert result.success is True
        assert {m.keyword for m in result.keyword_matches} == {"diabetes", "blood sugar", "insulin"}

    @pytest.mark.asyncio
    async def test_dispatch_in_background(self, pipeline, document_store):
        dispatcher = ProcessingDispatcher(pipeline)

        task = dispatcher.dispatch("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))
        await dispatcher.drain()

        assert task.result().success is True
        assert await document_store.get_status("doc-1") is COMPLETED


# =============================================================================
# No match
# =============================================================================

class TestNoMatch:

    @pytest.mark.asyncio
    async def test_completed_without_record(self, pipeline, document_store, record_store):
        pdf = make_pdf(["\n".join([UNRELATED_LINE] * 12)])

        result = await pipeline.process_document("doc-1", "patient-1", pdf)

        assert result.success is False
        assert result.status is COMPLETED
        assert result.record is None
        assert result.message == "No matching disease template found"
        assert len(result.text_preview) == 503
        assert result.text_preview.endswith("...")
        assert record_store.all() == []
        assert document_store.history["doc-1"] == [PENDING, PROCESSING, COMPLETED]


# =============================================================================
# Failures
# =============================================================================

class TestFailures:

    @pytest.mark.asyncio
    async def test_insufficient_text(self, pipeline, ocr_engine, document_store):
        ocr_engine.texts = ["abc"]

        with pytest.raises(InsufficientTextError) as exc_info:
            await pipeline.process_document("doc-1", "patient-1", make_pdf([""]))

        assert exc_info.value.document_id == "doc-1"
        assert document_store.history["doc-1"] == [PENDING, PROCESSING, FAILED]
        assert document_store.extracted_text("doc-1") is None

    @pytest.mark.asyncio
    async def test_ocr_finds_nothing(self, pipeline, ocr_engine, document_store):
        ocr_engine.texts = ["", "   "]

        with pytest.raises(OCRExtractionError):
            await pipeline.process_document("doc-1", "patient-1", make_pdf(["", ""]))

        assert await document_store.get_status("doc-1") is FAILED

    @pytest.mark.asyncio
    async def test_corrupt_pdf(self, pipeline, document_store):
        with pytest.raises(TypeDetectionError):
            await pipeline.process_document("doc-1", "patient-1", b"definitely not a pdf")

        assert await document_store.get_status("doc-1") is FAILED

    @pytest.mark.asyncio
    async def test_record_write_failure(self, template_store, document_store, ocr_engine):
        record_store = AsyncMock()
        record_store.create_record.side_effect = PersistenceError("disk full")
        pipeline = DocumentProcessingPipeline(
            template_store=template_store,
            document_store=document_store,
            record_store=record_store,
            ocr_engine=ocr_engine,
        )

        with pytest.raises(PersistenceError, match="disk full"):
            await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))

        assert document_store.history["doc-1"] == [PENDING, PROCESSING, FAILED]

    @pytest.mark.asyncio
    async def test_missing_payload_without_source(self, pipeline, document_store):
        with pytest.raises(ValueError):
            await pipeline.process_document("doc-1", "patient-1")

        assert await document_store.get_status("doc-1") is FAILED

    @pytest.mark.asyncio
    async def test_unknown_document_is_not_processed(self, pipeline, record_store):
        with pytest.raises(PersistenceError):
            await pipeline.process_document("never-uploaded", "patient-1", make_pdf([DIABETES_TEXT]))

        assert record_store.all() == []

    @pytest.mark.asyncio
    async def test_already_completed_document_rejected(self, pipeline, document_store):
        await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))

        with pytest.raises(PersistenceError):
            await pipeline.process_document("doc-1", "patient-1", make_pdf([DIABETES_TEXT]))

        assert document_store.history["doc-1"] == [PENDING, PROCESSING, COMPLETED]
