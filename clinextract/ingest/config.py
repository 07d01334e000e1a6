"""
ClinExtract - Pipeline Configuration
====================================

Tunable constants of the processing pipeline and database settings.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from clinextract.shared.exceptions import ConfigurationError


@dataclass
class PipelineConfig:
    """
    Configuration for the document processing pipeline.

    Usage:
        config = PipelineConfig(ocr_max_pages=5)
        pipeline = DocumentProcessingPipeline(stores..., config=config)

        # Or from environment
        config = PipelineConfig.from_env()
    """
    # PDF type detection
    type_detection_min_chars: int = 50  # below this the PDF is treated as scanned

    # Minimum usable text after extraction/OCR
    min_text_chars: int = 20

    # OCR settings
    ocr_max_pages: int = 10
    ocr_dpi: int = 300
    ocr_language: str = "eng"
    tesseract_cmd: Optional[str] = None

    # Matching and extraction
    match_threshold: float = 25.0  # tolerant of OCR noise
    boolean_context_chars: int = 100

    # Result preview when no template matched
    preview_chars: int = 500

    def __post_init__(self):
        if self.ocr_max_pages <= 0:
            raise ConfigurationError("ocr_max_pages must be positive")
        if self.ocr_dpi <= 0:
            raise ConfigurationError("ocr_dpi must be positive")
        if not 0 <= self.match_threshold <= 100:
            raise ConfigurationError("match_threshold must be within [0, 100]")
        if self.min_text_chars < 0 or self.type_detection_min_chars < 0:
            raise ConfigurationError("text length floors cannot be negative")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create config from environment variables."""
        load_dotenv()
        try:
            return cls(
                type_detection_min_chars=int(os.getenv("TYPE_DETECTION_MIN_CHARS", "50")),
                min_text_chars=int(os.getenv("MIN_TEXT_CHARS", "20")),
                ocr_max_pages=int(os.getenv("OCR_MAX_PAGES", "10")),
                ocr_dpi=int(os.getenv("OCR_DPI", "300")),
                ocr_language=os.getenv("OCR_LANGUAGE", "eng"),
                tesseract_cmd=os.getenv("TESSERACT_CMD") or None,
                match_threshold=float(os.getenv("MATCH_THRESHOLD", "25")),
                boolean_context_chars=int(os.getenv("BOOLEAN_CONTEXT_CHARS", "100")),
                preview_chars=int(os.getenv("PREVIEW_CHARS", "500")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid pipeline setting: {e}") from e


@dataclass
class DatabaseConfig:
    """PostgreSQL settings for the asyncpg-backed stores."""
    connection_string: str = ""
    min_connections: int = 2
    max_connections: int = 10

    @property
    def enabled(self) -> bool:
        return bool(self.connection_string)

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        load_dotenv()
        return cls(
            connection_string=os.getenv("DATABASE_URL", ""),
            min_connections=int(os.getenv("DB_MIN_CONNECTIONS", "2")),
            max_connections=int(os.getenv("DB_MAX_CONNECTIONS", "10")),
        )
