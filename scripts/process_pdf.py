#!/usr/bin/env python3
"""
ClinExtract - Process a Local PDF
=================================

Runs the full pipeline on one PDF with in-memory stores seeded with the
default disease templates, and prints the result as JSON.

Usage:
    python scripts/process_pdf.py report.pdf
    python scripts/process_pdf.py scan.pdf --patient p-42 --max-pages 3 --threshold 30
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinextract.core.logging_config import configure_logging
from clinextract.database import (
    FileSystemDocumentSource,
    InMemoryDocumentStore,
    InMemoryRecordStore,
    InMemoryTemplateStore,
    seed_default_templates,
)
from clinextract.ingest import DocumentProcessingPipeline, PipelineConfig
from clinextract.shared.exceptions import ClinExtractError


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Extract a structured medical record from a clinical PDF"
    )
    parser.add_argument("pdf", type=Path, help="Path to the PDF file")
    parser.add_argument(
        "--patient", "-p",
        default="local-patient",
        help="Patient identifier for the resulting record"
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        help="OCR page cap (default from OCR_MAX_PAGES or 10)"
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help="Match confidence threshold (default from MATCH_THRESHOLD or 25)"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON logs instead of console logs"
    )
    args = parser.parse_args()

    configure_logging(json_output=args.json_logs)

    config = PipelineConfig.from_env()
    if args.max_pages is not None:
        config = replace(config, ocr_max_pages=args.max_pages)
    if args.threshold is not None:
        config = replace(config, match_threshold=args.threshold)

    pdf_path = args.pdf.resolve()
    document_id = pdf_path.name

    templates = InMemoryTemplateStore()
    await seed_default_templates(templates)
    documents = InMemoryDocumentStore()
    documents.register(document_id)

    pipeline = DocumentProcessingPipeline(
        template_store=templates,
        document_store=documents,
        record_store=InMemoryRecordStore(),
        document_source=FileSystemDocumentSource(pdf_path.parent),
        config=config,
    )

    try:
        result = await pipeline.process_document(document_id, args.patient)
    except ClinExtractError as e:
        print(json.dumps({"success": False, "error": type(e).__name__, "message": str(e)}, indent=2))
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
