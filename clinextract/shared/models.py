"""
ClinExtract Models
==================

Domain models shared by the pipeline and the stores.

Key design principles:
1. Templates are immutable for the duration of a run
2. Extracted values are a tagged variant checked against the field type
3. Absent fields are never stored (no None values in ExtractedData)
4. Database/JSON serialization lives next to each model (to_dict, from_dict)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from clinextract.shared.enums import FieldType, OutcomeStatus
from clinextract.shared.exceptions import TemplateValidationError


RawValue = Union[str, float, date, bool]


# =============================================================================
# TEMPLATES
# =============================================================================

@dataclass(frozen=True)
class FieldSpec:
    """A field to extract once a template has matched."""
    name: str
    field_type: FieldType
    required: bool = False
    extraction_pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FieldSpec":
        """Build from either the storage shape or the admin (camelCase) shape."""
        name = data.get("name") or data.get("field_name") or data.get("fieldName")
        if not name or not str(name).strip():
            raise TemplateValidationError("Field name is required")

        raw_type = data.get("field_type") or data.get("fieldType") or data.get("type")
        try:
            field_type = raw_type if isinstance(raw_type, FieldType) else FieldType(str(raw_type).lower())
        except ValueError:
            raise TemplateValidationError(
                f"Unsupported field type {raw_type!r} for field {name!r}"
            ) from None

        pattern = data.get("extraction_pattern", data.get("extractionPattern"))
        return cls(
            name=str(name).strip(),
            field_type=field_type,
            required=bool(data.get("required", False)),
            extraction_pattern=pattern or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "field_type": self.field_type.value,
            "required": self.required,
            "extraction_pattern": self.extraction_pattern,
        }


@dataclass(frozen=True)
class DiseaseTemplate:
    """
    Admin-defined disease vocabulary plus the fields to extract.

    Keywords form an ordered set: duplicates (case-insensitive) and blanks
    are dropped on construction through from_dict.
    """
    id: str
    name: str
    keywords: Tuple[str, ...]
    fields: Tuple[FieldSpec, ...] = ()
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DiseaseTemplate":
        name = data.get("name") or data.get("disease_name") or data.get("diseaseName")
        if not name or not str(name).strip():
            raise TemplateValidationError("Disease name is required")

        keywords: List[str] = []
        seen = set()
        for keyword in data.get("keywords") or []:
            cleaned = str(keyword).strip()
            if cleaned and cleaned.lower() not in seen:
                seen.add(cleaned.lower())
                keywords.append(cleaned)

        fields = tuple(
            f if isinstance(f, FieldSpec) else FieldSpec.from_dict(f)
            for f in data.get("fields") or []
        )
        names = [f.name for f in fields]
        if len(names) != len(set(names)):
            raise TemplateValidationError(f"Duplicate field names in template {name!r}")

        return cls(
            id=str(data.get("id") or data.get("_id") or uuid4()),
            name=str(name).strip(),
            keywords=tuple(keywords),
            fields=fields,
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "keywords": list(self.keywords),
            "fields": [f.to_dict() for f in self.fields],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# =============================================================================
# EXTRACTED VALUES
# =============================================================================

_PYTHON_TYPES = {
    FieldType.TEXT: (str,),
    FieldType.NUMBER: (float,),
    FieldType.DATE: (date,),
    FieldType.BOOLEAN: (bool,),
}


@dataclass(frozen=True)
class FieldValue:
    """Tagged value: the kind always agrees with the Python type of `value`."""
    kind: FieldType
    value: RawValue

    def __post_init__(self):
        value = self.value
        if self.kind is FieldType.NUMBER and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
            object.__setattr__(self, "value", value)
        if self.kind is not FieldType.BOOLEAN and isinstance(value, bool):
            raise TypeError(f"bool is not a valid {self.kind.value} value")
        if not isinstance(value, _PYTHON_TYPES[self.kind]):
            raise TypeError(
                f"{type(value).__name__} is not a valid {self.kind.value} value"
            )

    @classmethod
    def text(cls, value: str) -> "FieldValue":
        return cls(FieldType.TEXT, value)

    @classmethod
    def number(cls, value: float) -> "FieldValue":
        return cls(FieldType.NUMBER, value)

    @classmethod
    def date(cls, value: date) -> "FieldValue":
        return cls(FieldType.DATE, value)

    @classmethod
    def boolean(cls, value: bool) -> "FieldValue":
        return cls(FieldType.BOOLEAN, value)

    def to_json(self) -> Any:
        if self.kind is FieldType.DATE:
            return self.value.isoformat()
        return self.value

    @classmethod
    def from_json(cls, kind: FieldType, raw: Any) -> "FieldValue":
        if kind is FieldType.DATE and isinstance(raw, str):
            return cls(kind, date.fromisoformat(raw[:10]))
        return cls(kind, raw)


class ExtractedData:
    """
    Ordered field name -> FieldValue container.

    Unresolved fields are simply absent; assigning None is an error.
    """

    def __init__(self, values: Optional[Mapping[str, FieldValue]] = None):
        self._values: Dict[str, FieldValue] = {}
        for name, value in (values or {}).items():
            self[name] = value

    def __setitem__(self, name: str, value: FieldValue) -> None:
        if not isinstance(value, FieldValue):
            raise TypeError(f"Expected FieldValue for {name!r}, got {type(value).__name__}")
        self._values[name] = value

    def __getitem__(self, name: str) -> FieldValue:
        return self._values[name]

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtractedData):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"ExtractedData({self.to_dict()!r})"

    def get(self, name: str, default: Optional[FieldValue] = None) -> Optional[FieldValue]:
        return self._values.get(name, default)

    def items(self):
        return self._values.items()

    def value(self, name: str) -> Optional[RawValue]:
        """Raw Python value of a field, or None when absent."""
        item = self._values.get(name)
        return item.value if item else None

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-ready mapping (dates as ISO strings)."""
        return {name: v.to_json() for name, v in self._values.items()}

    def to_json(self) -> Dict[str, Dict[str, Any]]:
        """Tagged mapping for storage; round-trips through from_json."""
        return {
            name: {"type": v.kind.value, "value": v.to_json()}
            for name, v in self._values.items()
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Mapping[str, Any]]) -> "ExtractedData":
        return cls({
            name: FieldValue.from_json(FieldType(item["type"]), item["value"])
            for name, item in data.items()
        })


@dataclass(frozen=True)
class KeywordMatch:
    """Matching evidence: a keyword and how often it occurred."""
    keyword: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"keyword": self.keyword, "count": self.count}


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class MedicalRecord:
    """Structured result of a successful template match."""
    id: str
    document_id: str
    patient_id: str
    template_id: str
    disease_name: str
    extracted_data: ExtractedData
    confidence: float
    verified: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        document_id: str,
        patient_id: str,
        template: DiseaseTemplate,
        extracted_data: ExtractedData,
        confidence: float,
    ) -> "MedicalRecord":
        return cls(
            id=str(uuid4()),
            document_id=document_id,
            patient_id=patient_id,
            template_id=template.id,
            disease_name=template.name,
            extracted_data=extracted_data,
            confidence=confidence,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "patient_id": self.patient_id,
            "template_id": self.template_id,
            "disease_name": self.disease_name,
            "extracted_data": self.extracted_data.to_dict(),
            "confidence": self.confidence,
            "verified": self.verified,
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# RUN OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class Outcome:
    """Result of one unit of work: a page during OCR, or a field during extraction."""
    unit: str
    status: OutcomeStatus
    detail: Optional[str] = None

    @classmethod
    def ok(cls, unit: str, detail: Optional[str] = None) -> "Outcome":
        return cls(unit, OutcomeStatus.OK, detail)

    @classmethod
    def skipped(cls, unit: str, detail: Optional[str] = None) -> "Outcome":
        return cls(unit, OutcomeStatus.SKIPPED, detail)

    @classmethod
    def error(cls, unit: str, detail: Optional[str] = None) -> "Outcome":
        return cls(unit, OutcomeStatus.ERROR, detail)

    def to_dict(self) -> Dict[str, Any]:
        return {"unit": self.unit, "status": self.status.value, "detail": self.detail}


@dataclass
class RunSummary:
    """Per-page and per-field outcomes of one document run."""
    pages: List[Outcome] = field(default_factory=list)
    fields: List[Outcome] = field(default_factory=list)

    @staticmethod
    def _count(outcomes: List[Outcome]) -> Dict[str, int]:
        counts = {status.value: 0 for status in OutcomeStatus}
        for outcome in outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def page_counts(self) -> Dict[str, int]:
        return self._count(self.pages)

    @property
    def field_counts(self) -> Dict[str, int]:
        return self._count(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": self.page_counts,
            "fields": self.field_counts,
            "outcomes": [o.to_dict() for o in self.pages + self.fields],
        }
