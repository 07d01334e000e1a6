"""
ClinExtract - Field Extractor
=============================

Typed field extraction for a matched disease template.

Strategies by field type:
- text:    custom pattern, then generated "<label>[:\\s]+([^\\n\\r]+)" patterns
- number:  same chain, first decimal number in the captured region
- date:    four fixed date formats scanned over the whole document
- boolean: positive/negative vocabulary in a window around the field name

A failing field (e.g. a malformed custom pattern) is recorded as an error
outcome and left out of the result; the other fields are still extracted.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from clinextract.core.logging_config import get_logger
from clinextract.shared.enums import FieldType
from clinextract.shared.exceptions import FieldExtractionError
from clinextract.shared.models import (
    DiseaseTemplate, ExtractedData, FieldSpec, FieldValue, Outcome,
)

logger = get_logger(__name__)

POSITIVE_WORDS: Tuple[str, ...] = (
    "yes", "positive", "present", "true", "confirmed", "detected", "found",
)
NEGATIVE_WORDS: Tuple[str, ...] = (
    "no", "negative", "absent", "false", "denied", "not detected", "not found",
)

DEFAULT_CONTEXT_CHARS = 100

_NUMBER = re.compile(r"\d+(?:\.\d+)?")

_MONTHS: Dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _dmy(groups: Tuple[str, ...]) -> date:
    day, month, year = groups
    return date(int(year), int(month), int(day))


def _ymd(groups: Tuple[str, ...]) -> date:
    year, month, day = groups
    return date(int(year), int(month), int(day))


def _day_month_name(groups: Tuple[str, ...]) -> date:
    day, month_name, year = groups
    return date(int(year), _MONTHS[month_name[:3].lower()], int(day))


# Order matters: the first format with a parseable match wins
DATE_FORMATS: List[Tuple[re.Pattern, Callable[[Tuple[str, ...]], date]]] = [
    (re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b"), _dmy),
    (re.compile(r"\b(\d{1,2})-(\d{1,2})-(\d{4})\b"), _dmy),
    (re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b"), _ymd),
    (
        re.compile(
            r"\b(\d{1,2})\s+((?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*)\s+(\d{4})\b",
            re.IGNORECASE,
        ),
        _day_month_name,
    ),
]


@dataclass
class FieldExtractionResult:
    """Extracted values plus one outcome per template field."""
    data: ExtractedData
    outcomes: List[Outcome] = field(default_factory=list)


class FieldExtractor:
    """
    Extracts typed values for each field of a template.

    Usage:
        extractor = FieldExtractor()
        result = extractor.extract_all(normalized_text, template)
        result.data.value("blood_sugar_level")  # 180.0
    """

    def __init__(self, context_chars: int = DEFAULT_CONTEXT_CHARS):
        self.context_chars = context_chars
        self._word_patterns: Dict[str, re.Pattern] = {}

    # =========================================================================
    # Template-level
    # =========================================================================

    def extract_all(self, text: str, template: DiseaseTemplate) -> FieldExtractionResult:
        """Extract every field of `template`, isolating per-field failures."""
        data = ExtractedData()
        outcomes: List[Outcome] = []

        for spec in template.fields:
            try:
                value = self.extract_field(text, spec)
            except FieldExtractionError as e:
                logger.warning("field_extraction_failed", field=spec.name, error=str(e))
                outcomes.append(Outcome.error(spec.name, str(e)))
                continue
            except Exception as e:
                logger.warning(
                    "field_extraction_failed",
                    field=spec.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                outcomes.append(Outcome.error(spec.name, f"{type(e).__name__}: {e}"))
                continue

            if value is None:
                detail = "required field not found" if spec.required else "not found"
                logger.debug("field_unresolved", field=spec.name, required=spec.required)
                outcomes.append(Outcome.skipped(spec.name, detail))
            else:
                data[spec.name] = value
                outcomes.append(Outcome.ok(spec.name))

        return FieldExtractionResult(data=data, outcomes=outcomes)

    def extract_field(self, text: str, spec: FieldSpec) -> Optional[FieldValue]:
        """Dispatch on the declared field type."""
        if spec.field_type is FieldType.TEXT:
            raw = self.extract_text(text, spec)
            return FieldValue.text(raw) if raw is not None else None
        if spec.field_type is FieldType.NUMBER:
            number = self.extract_number(text, spec)
            return FieldValue.number(number) if number is not None else None
        if spec.field_type is FieldType.DATE:
            found = self.extract_date(text, spec)
            return FieldValue.date(found) if found is not None else None
        if spec.field_type is FieldType.BOOLEAN:
            flag = self.extract_boolean(text, spec)
            return FieldValue.boolean(flag) if flag is not None else None
        raise FieldExtractionError(f"Unsupported field type {spec.field_type!r}", spec.name)

    # =========================================================================
    # Pattern chain
    # =========================================================================

    @staticmethod
    def _flexible_label(name: str) -> str:
        return r"\s*".join(re.escape(part) for part in name.split("_"))

    def _patterns(self, spec: FieldSpec) -> List[re.Pattern]:
        """Custom pattern first, then the generated label patterns."""
        patterns: List[re.Pattern] = []
        if spec.extraction_pattern:
            try:
                patterns.append(re.compile(spec.extraction_pattern, re.IGNORECASE))
            except (re.error, OverflowError, RecursionError) as e:
                raise FieldExtractionError(
                    f"Invalid extraction pattern {spec.extraction_pattern!r}: {e}",
                    spec.name,
                ) from e

        labels = [
            re.escape(spec.name),
            re.escape(spec.name.replace("_", " ")),
            self._flexible_label(spec.name),
        ]
        seen = set()
        for label in labels:
            source = rf"{label}[:\s]+([^\n\r]+)"
            if source not in seen:
                seen.add(source)
                patterns.append(re.compile(source, re.IGNORECASE))
        return patterns

    @staticmethod
    def _candidate(pattern: re.Pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        if not match:
            return None
        if pattern.groups and match.group(1) is not None:
            return match.group(1)
        return match.group(0)

    def extract_text(self, text: str, spec: FieldSpec) -> Optional[str]:
        label_prefix = re.compile(rf"^(?:{self._flexible_label(spec.name)}[:\s]+)+", re.IGNORECASE)
        for pattern in self._patterns(spec):
            candidate = self._candidate(pattern, text)
            if candidate is None:
                continue
            value = label_prefix.sub("", candidate).strip()
            if value:
                return value
        return None

    def extract_number(self, text: str, spec: FieldSpec) -> Optional[float]:
        for pattern in self._patterns(spec):
            candidate = self._candidate(pattern, text)
            if candidate is None:
                continue
            number = _NUMBER.search(candidate)
            if number:
                return float(number.group(0))
        return None

    # =========================================================================
    # Dates
    # =========================================================================

    def extract_date(self, text: str, spec: FieldSpec) -> Optional[date]:
        """First parseable date in the document, trying formats in order."""
        for pattern, build in DATE_FORMATS:
            for match in pattern.finditer(text):
                try:
                    return build(match.groups())
                except (ValueError, KeyError):
                    logger.debug("date_unparseable", field=spec.name, candidate=match.group(0))
        return None

    # =========================================================================
    # Booleans
    # =========================================================================

    def _word_pattern(self, word: str) -> re.Pattern:
        pattern = self._word_patterns.get(word)
        if pattern is None:
            pattern = re.compile(rf"\b{re.escape(word)}\b")
            self._word_patterns[word] = pattern
        return pattern

    def _name_pattern(self, field_name: str) -> re.Pattern:
        key = f"name:{field_name.lower()}"
        pattern = self._word_patterns.get(key)
        if pattern is None:
            # Words may be joined by "_" or by any whitespace run, line breaks included
            words = [re.escape(w) for w in re.split(r"[_\s]+", field_name.lower()) if w]
            pattern = re.compile(r"(?:_|\s+)".join(words))
            self._word_patterns[key] = pattern
        return pattern

    def field_context(self, text: str, field_name: str) -> str:
        """Window of `context_chars` on both sides of the field name's first occurrence."""
        text_lower = text.lower()
        match = self._name_pattern(field_name).search(text_lower)
        if not match:
            return ""
        start = max(0, match.start() - self.context_chars)
        end = min(len(text_lower), match.end() + self.context_chars)
        return text_lower[start:end]

    def extract_boolean(self, text: str, spec: FieldSpec) -> Optional[bool]:
        """True/False from the surrounding vocabulary; None when undecided."""
        context = self.field_context(text, spec.name)
        if not context:
            return None
        if any(self._word_pattern(w).search(context) for w in POSITIVE_WORDS):
            return True
        if any(self._word_pattern(w).search(context) for w in NEGATIVE_WORDS):
            return False
        return None
