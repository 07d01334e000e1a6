"""
ClinExtract - Document Processing Pipeline
==========================================

Turns an uploaded clinical PDF into a structured medical record.

Pipeline stages:
1. Mark the document as processing
2. Detect PDF type (text layer vs. scanned image)
3. Extract text (direct, or OCR fallback for image PDFs)
4. Store extracted text
5. Normalize and match against disease templates
6. Extract typed fields for the matched template
7. Persist the medical record and mark the document completed

Status transitions: pending -> processing -> completed | failed.
No template match is a completed run with success=False, not a failure.
Any other error marks the document failed and is re-raised.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from clinextract.core.disease_matcher import DiseaseMatcher
from clinextract.core.field_extractor import FieldExtractor
from clinextract.core.logging_config import bind_document, get_logger, stage_event
from clinextract.core.normalizer import normalize_text
from clinextract.database.repositories.base import (
    DocumentSource, DocumentStore, RecordStore, TemplateStore,
)
from clinextract.ingest.config import PipelineConfig
from clinextract.ingest.ocr import OCREngine, OCRExtractor, TesseractEngine
from clinextract.ingest.pdf_detector import PDFTypeDetector
from clinextract.shared.enums import PDFType, ProcessingStatus
from clinextract.shared.exceptions import InsufficientTextError, PersistenceError
from clinextract.shared.models import KeywordMatch, MedicalRecord, RunSummary

logger = get_logger(__name__)


@dataclass
class ProcessingResult:
    """Outcome of one document run, returned to the caller."""
    success: bool
    message: str
    document_id: str
    status: ProcessingStatus
    pdf_type: Optional[PDFType] = None
    record: Optional[MedicalRecord] = None
    disease: Optional[str] = None
    confidence: Optional[float] = None
    keyword_matches: List[KeywordMatch] = field(default_factory=list)
    extracted_data_count: int = 0
    text_preview: Optional[str] = None
    summary: RunSummary = field(default_factory=RunSummary)
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "document_id": self.document_id,
            "status": self.status.value,
            "pdf_type": self.pdf_type.value if self.pdf_type else None,
            "medical_record": self.record.to_dict() if self.record else None,
            "disease": self.disease,
            "confidence": self.confidence,
            "keyword_matches": [m.to_dict() for m in self.keyword_matches],
            "extracted_data_count": self.extracted_data_count,
            "extracted_text": self.text_preview,
            "summary": self.summary.to_dict(),
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class ExtractedText:
    """Raw text of a document and how it was obtained."""
    text: str
    pdf_type: PDFType
    page_count: int


class StatusTracker:
    """
    Drives a document through the processing state machine.

    The local state only advances after the store accepted the write, so a
    failed write never leaves the tracker ahead of the store.
    """

    def __init__(self, document_id: str, store: DocumentStore):
        self.document_id = document_id
        self.store = store
        self.current = ProcessingStatus.PENDING

    async def advance(self, target: ProcessingStatus) -> None:
        await self.store.update_status(self.document_id, target)
        logger.info("status_changed", previous=self.current.value, status=target.value)
        self.current = target

    async def fail(self) -> None:
        """Best-effort transition to failed; never masks the original error."""
        if not self.current.can_transition_to(ProcessingStatus.FAILED):
            logger.warning("status_not_failed", status=self.current.value)
            return
        try:
            await self.advance(ProcessingStatus.FAILED)
        except PersistenceError as e:
            logger.error("status_update_failed", target="failed", error=str(e))


def text_preview(text: str, limit: int) -> str:
    return text[:limit] + "..."


class DocumentProcessingPipeline:
    """
    Stateless document processing service.

    All collaborators are injected, so tests can substitute any of them.

    Usage:
        pipeline = DocumentProcessingPipeline(
            template_store=TemplateRepository(db),
            document_store=DocumentRepository(db),
            record_store=RecordRepository(db),
            ocr_engine=TesseractEngine(),
        )
        result = await pipeline.process_document(doc_id, patient_id, pdf_bytes, pdf_path)
    """

    def __init__(
        self,
        template_store: TemplateStore,
        document_store: DocumentStore,
        record_store: RecordStore,
        ocr_engine: Optional[OCREngine] = None,
        document_source: Optional[DocumentSource] = None,
        config: Optional[PipelineConfig] = None,
        detector: Optional[PDFTypeDetector] = None,
        ocr_extractor: Optional[OCRExtractor] = None,
        matcher: Optional[DiseaseMatcher] = None,
        field_extractor: Optional[FieldExtractor] = None,
    ):
        self.config = config or PipelineConfig()
        self.template_store = template_store
        self.document_store = document_store
        self.record_store = record_store
        self.document_source = document_source

        self.detector = detector or PDFTypeDetector(self.config.type_detection_min_chars)
        self.ocr_extractor = ocr_extractor or OCRExtractor(
            engine=ocr_engine or TesseractEngine(self.config.tesseract_cmd),
            max_pages=self.config.ocr_max_pages,
            dpi=self.config.ocr_dpi,
            language=self.config.ocr_language,
        )
        self.matcher = matcher or DiseaseMatcher(self.config.match_threshold)
        self.field_extractor = field_extractor or FieldExtractor(self.config.boolean_context_chars)

    async def process_document(
        self,
        document_id: str,
        patient_id: str,
        pdf_bytes: Optional[bytes] = None,
        pdf_path: Optional[Union[str, Path]] = None,
    ) -> ProcessingResult:
        """
        Run the full pipeline for one uploaded document.

        Args:
            document_id: Identifier of the uploaded document
            patient_id: Owner of the resulting medical record
            pdf_bytes: Raw PDF; loaded from the document source when omitted
            pdf_path: Path used for page rasterization during OCR

        Returns:
            ProcessingResult (success=False when no template matched)

        Raises:
            ClinExtractError: any stage failure; the document is marked failed
        """
        start = time.perf_counter()
        bind_document(document_id)
        tracker = StatusTracker(document_id, self.document_store)
        summary = RunSummary()
        logger.info("processing_started", patient_id=patient_id)

        try:
            await tracker.advance(ProcessingStatus.PROCESSING)

            if pdf_bytes is None:
                if self.document_source is None:
                    raise ValueError("pdf_bytes is required when no document source is configured")
                pdf_bytes, pdf_path = await self.document_source.load(document_id)

            extracted = await self._extract_text(pdf_bytes, pdf_path, summary)

            if len(extracted.text.strip()) < self.config.min_text_chars:
                raise InsufficientTextError(
                    "Insufficient text extracted from PDF",
                    text_length=len(extracted.text.strip()),
                    document_id=document_id,
                )

            await self.document_store.update_extracted_text(
                document_id, extracted.text, datetime.now(timezone.utc)
            )

            normalized = normalize_text(extracted.text)
            templates = await self.template_store.list_templates()

            with stage_event(logger, "disease_matching", templates=len(templates)) as event:
                match = self.matcher.match(normalized, templates)
                event["outcome"] = "matched" if match else "no_match"
                if match:
                    event["disease"] = match.template.name
                    event["confidence"] = round(match.confidence, 1)

            if match is None:
                await tracker.advance(ProcessingStatus.COMPLETED)
                return ProcessingResult(
                    success=False,
                    message="No matching disease template found",
                    document_id=document_id,
                    status=tracker.current,
                    pdf_type=extracted.pdf_type,
                    text_preview=text_preview(extracted.text, self.config.preview_chars),
                    summary=summary,
                    duration_seconds=time.perf_counter() - start,
                )

            with stage_event(logger, "field_extraction", template=match.template.name) as event:
                fields = self.field_extractor.extract_all(normalized, match.template)
                event["extracted"] = len(fields.data)
                event["fields"] = len(match.template.fields)
            summary.fields = fields.outcomes

            record = MedicalRecord.create(
                document_id=document_id,
                patient_id=patient_id,
                template=match.template,
                extracted_data=fields.data,
                confidence=match.confidence,
            )
            with stage_event(logger, "persistence"):
                record = await self.record_store.create_record(record)

            await tracker.advance(ProcessingStatus.COMPLETED)
            duration = time.perf_counter() - start
            logger.info(
                "processing_completed",
                disease=match.template.name,
                confidence=round(match.confidence, 1),
                duration_ms=int(duration * 1000),
            )

            return ProcessingResult(
                success=True,
                message="PDF processed successfully",
                document_id=document_id,
                status=tracker.current,
                pdf_type=extracted.pdf_type,
                record=record,
                disease=match.template.name,
                confidence=match.confidence,
                keyword_matches=match.keyword_matches,
                extracted_data_count=len(fields.data),
                summary=summary,
                duration_seconds=duration,
            )

        except Exception as e:
            logger.error(
                "processing_failed",
                error_type=type(e).__name__,
                error=str(e),
                duration_ms=int((time.perf_counter() - start) * 1000),
            )
            await tracker.fail()
            raise
        finally:
            bind_document(None)

    async def _extract_text(
        self,
        pdf_bytes: bytes,
        pdf_path: Optional[Union[str, Path]],
        summary: RunSummary,
    ) -> ExtractedText:
        """Direct text for text PDFs, OCR for image PDFs."""
        with stage_event(logger, "type_detection") as event:
            info = await asyncio.to_thread(self.detector.detect, pdf_bytes)
            event["outcome"] = info.pdf_type.value
            event["pages"] = info.page_count
            event["chars"] = len(info.text)

        if info.is_text:
            return ExtractedText(text=info.text, pdf_type=info.pdf_type, page_count=info.page_count)

        with stage_event(logger, "ocr", pages=info.page_count) as event:
            ocr = await asyncio.to_thread(
                self.ocr_extractor.extract,
                pdf_path=pdf_path,
                pdf_bytes=None if pdf_path else pdf_bytes,
                page_count=info.page_count,
            )
            summary.pages = ocr.outcomes
            event["pages_processed"] = ocr.pages_processed
            event["pages_recognized"] = ocr.pages_recognized
            event["chars"] = len(ocr.text)

        return ExtractedText(text=ocr.text, pdf_type=info.pdf_type, page_count=info.page_count)
