"""
ClinExtract - Configuration Unit Tests
"""

import pytest

from clinextract.ingest.config import DatabaseConfig, PipelineConfig
from clinextract.shared.exceptions import ConfigurationError


class TestPipelineConfig:

    def test_defaults(self):
        config = PipelineConfig()
        assert config.type_detection_min_chars == 50
        assert config.min_text_chars == 20
        assert config.ocr_max_pages == 10
        assert config.ocr_dpi == 300
        assert config.ocr_language == "eng"
        assert config.match_threshold == 25.0
        assert config.preview_chars == 500

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OCR_MAX_PAGES", "3")
        monkeypatch.setenv("MATCH_THRESHOLD", "40")
        monkeypatch.setenv("OCR_LANGUAGE", "deu")
        config = PipelineConfig.from_env()
        assert config.ocr_max_pages == 3
        assert config.match_threshold == 40.0
        assert config.ocr_language == "deu"

    def test_from_env_invalid_number(self, monkeypatch):
        monkeypatch.setenv("OCR_DPI", "high")
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_env()

    @pytest.mark.parametrize("kwargs", [
        {"ocr_max_pages": 0},
        {"ocr_dpi": -1},
        {"match_threshold": 120},
        {"min_text_chars": -5},
    ])
    def test_validation(self, kwargs):
        with pytest.raises(ConfigurationError):
            PipelineConfig(**kwargs)


class TestDatabaseConfig:

    def test_disabled_without_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "")
        assert DatabaseConfig.from_env().enabled is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/db")
        monkeypatch.setenv("DB_MAX_CONNECTIONS", "4")
        config = DatabaseConfig.from_env()
        assert config.enabled
        assert config.max_connections == 4
