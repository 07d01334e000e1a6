"""
ClinExtract - PDF Document Repository
=====================================

Status updates are guarded in SQL: a row is only updated when its current
status is an allowed predecessor of the target status.
"""

from datetime import datetime

from clinextract.database.repositories.base import BaseRepository, DocumentStore
from clinextract.shared.enums import ProcessingStatus
from clinextract.shared.exceptions import InvalidStatusTransitionError, PersistenceError


class DocumentRepository(BaseRepository, DocumentStore):
    """PostgreSQL-backed document store."""

    table_name = "pdf_documents"

    async def get_status(self, document_id: str) -> ProcessingStatus:
        row = await self._fetchrow(
            f"SELECT processing_status FROM {self.table_name} WHERE id = $1",
            document_id,
        )
        if row is None:
            raise PersistenceError(f"Unknown document {document_id}", document_id=document_id)
        return ProcessingStatus(row["processing_status"])

    async def update_status(self, document_id: str, status: ProcessingStatus) -> None:
        allowed = [s.value for s in ProcessingStatus.predecessors(status)]
        result = await self._execute(
            f"""
            UPDATE {self.table_name}
            SET processing_status = $2
            WHERE id = $1 AND processing_status = ANY($3::text[])
            """,
            document_id,
            status.value,
            allowed,
        )
        if self._affected_rows(result) == 0:
            current = await self.get_status(document_id)
            raise InvalidStatusTransitionError(current, status, document_id=document_id)

    async def update_extracted_text(
        self,
        document_id: str,
        text: str,
        processed_at: datetime
    ) -> None:
        result = await self._execute(
            f"UPDATE {self.table_name} SET extracted_text = $2, processed_at = $3 WHERE id = $1",
            document_id,
            text,
            processed_at,
        )
        if self._affected_rows(result) == 0:
            raise PersistenceError(f"Unknown document {document_id}", document_id=document_id)
