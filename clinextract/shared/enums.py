"""Shared enumerations."""

from enum import Enum
from typing import Dict, FrozenSet


class PDFType(Enum):
    """Classification of an uploaded PDF."""
    TEXT = "text"
    IMAGE = "image"


class FieldType(Enum):
    """Declared type of a template field."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class OutcomeStatus(Enum):
    """Result of a single unit of work (page or field)."""
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


class ProcessingStatus(Enum):
    """Lifecycle state of a document's extraction run."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)

    def can_transition_to(self, target: "ProcessingStatus") -> bool:
        return target in _TRANSITIONS[self]

    @classmethod
    def predecessors(cls, target: "ProcessingStatus") -> FrozenSet["ProcessingStatus"]:
        """States from which `target` may be entered."""
        return frozenset(s for s, allowed in _TRANSITIONS.items() if target in allowed)


_TRANSITIONS: Dict[ProcessingStatus, FrozenSet[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset({ProcessingStatus.PROCESSING}),
    ProcessingStatus.PROCESSING: frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset(),
}
