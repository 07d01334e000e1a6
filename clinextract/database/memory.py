"""
In-memory stores for tests and local runs.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

from clinextract.database.repositories.base import DocumentStore, RecordStore, TemplateStore
from clinextract.shared.enums import ProcessingStatus
from clinextract.shared.exceptions import InvalidStatusTransitionError, PersistenceError
from clinextract.shared.models import DiseaseTemplate, MedicalRecord


class InMemoryTemplateStore(TemplateStore):

    def __init__(self, templates: Optional[List[DiseaseTemplate]] = None):
        self._templates: Dict[str, DiseaseTemplate] = {}
        self._lock = asyncio.Lock()
        for template in templates or []:
            self._templates[template.id] = template

    async def list_templates(self) -> List[DiseaseTemplate]:
        return sorted(self._templates.values(), key=lambda t: t.id)

    async def create_template(self, template: DiseaseTemplate) -> DiseaseTemplate:
        async with self._lock:
            if any(t.name.lower() == template.name.lower() for t in self._templates.values()):
                raise PersistenceError(f"Template {template.name!r} already exists")
            self._templates[template.id] = template
        return template


class InMemoryDocumentStore(DocumentStore):
    """Document status/text store that enforces the status state machine."""

    def __init__(self):
        self._status: Dict[str, ProcessingStatus] = {}
        self._text: Dict[str, str] = {}
        self._processed_at: Dict[str, datetime] = {}
        self.history: Dict[str, List[ProcessingStatus]] = {}
        self._lock = asyncio.Lock()

    def register(self, document_id: str) -> None:
        """Simulate an upload: a new document starts as pending."""
        self._status[document_id] = ProcessingStatus.PENDING
        self.history[document_id] = [ProcessingStatus.PENDING]

    def _require(self, document_id: str) -> ProcessingStatus:
        try:
            return self._status[document_id]
        except KeyError:
            raise PersistenceError(f"Unknown document {document_id}", document_id=document_id) from None

    async def get_status(self, document_id: str) -> ProcessingStatus:
        return self._require(document_id)

    async def update_status(self, document_id: str, status: ProcessingStatus) -> None:
        async with self._lock:
            current = self._require(document_id)
            if not current.can_transition_to(status):
                raise InvalidStatusTransitionError(current, status, document_id=document_id)
            self._status[document_id] = status
            self.history[document_id].append(status)

    async def update_extracted_text(
        self,
        document_id: str,
        text: str,
        processed_at: datetime
    ) -> None:
        async with self._lock:
            self._require(document_id)
            self._text[document_id] = text
            self._processed_at[document_id] = processed_at

    def extracted_text(self, document_id: str) -> Optional[str]:
        return self._text.get(document_id)

    def processed_at(self, document_id: str) -> Optional[datetime]:
        return self._processed_at.get(document_id)


class InMemoryRecordStore(RecordStore):

    def __init__(self):
        self._records: Dict[str, MedicalRecord] = {}
        self._lock = asyncio.Lock()

    async def create_record(self, record: MedicalRecord) -> MedicalRecord:
        async with self._lock:
            if record.id in self._records:
                raise PersistenceError(f"Record {record.id} already exists")
            self._records[record.id] = record
        return record

    async def list_for_document(self, document_id: str) -> List[MedicalRecord]:
        return [r for r in self._records.values() if r.document_id == document_id]

    def all(self) -> List[MedicalRecord]:
        return list(self._records.values())
