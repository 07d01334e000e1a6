"""
ClinExtract - Ingestion

PDF type detection, direct text and OCR extraction, and the processing
orchestrator.
"""

from clinextract.ingest.config import DatabaseConfig, PipelineConfig
from clinextract.ingest.dispatcher import ProcessingDispatcher
from clinextract.ingest.ocr import (
    OCREngine,
    OCRExtraction,
    OCRExtractor,
    PageRenderer,
    PyMuPDFPageRenderer,
    RecognitionResult,
    TesseractEngine,
)
from clinextract.ingest.pdf_detector import PDFTypeDetector, PDFTypeInfo
from clinextract.ingest.pipeline import DocumentProcessingPipeline, ProcessingResult
from clinextract.ingest.text_extractor import DirectTextExtractor, DirectTextResult
