"""
ClinExtract - Test Suite
========================

Structure:
    tests/
    ├── conftest.py          - Shared fixtures, PDF builder, OCR fakes
    ├── unit/                - Unit tests (fast, no external services)
    └── integration/         - Full pipeline runs over in-memory stores

Running Tests:
    # All tests
    pytest

    # Unit tests only
    pytest tests/unit/

    # With coverage
    pytest --cov=clinextract --cov-report=html
"""
