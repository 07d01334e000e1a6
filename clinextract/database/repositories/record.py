"""
ClinExtract - Medical Record Repository
=======================================
"""

import json
from typing import Any, Dict, List

from clinextract.database.repositories.base import BaseRepository, RecordStore
from clinextract.shared.models import ExtractedData, MedicalRecord


class RecordRepository(BaseRepository, RecordStore):
    """PostgreSQL-backed medical record store."""

    table_name = "medical_records"

    def _to_entity(self, row: Dict[str, Any]) -> MedicalRecord:
        data = row.get("extracted_data") or {}
        if isinstance(data, str):
            data = json.loads(data)
        return MedicalRecord(
            id=str(row["id"]),
            document_id=str(row["pdf_document_id"]),
            patient_id=str(row["patient_id"]),
            template_id=str(row["disease_template_id"]),
            disease_name=row["disease_name"],
            extracted_data=ExtractedData.from_json(data),
            confidence=float(row["confidence"]),
            verified=bool(row.get("verified", False)),
            created_at=row["created_at"],
        )

    async def create_record(self, record: MedicalRecord) -> MedicalRecord:
        query = f"""
            INSERT INTO {self.table_name} (
                id, pdf_document_id, patient_id, disease_template_id,
                disease_name, extracted_data, confidence, verified, created_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING *
        """
        row = await self._fetchrow(
            query,
            record.id,
            record.document_id,
            record.patient_id,
            record.template_id,
            record.disease_name,
            json.dumps(record.extracted_data.to_json()),
            record.confidence,
            record.verified,
            record.created_at,
        )
        return self._to_entity(row)

    async def list_for_document(self, document_id: str) -> List[MedicalRecord]:
        rows = await self._fetch(
            f"SELECT * FROM {self.table_name} WHERE pdf_document_id = $1 ORDER BY created_at",
            document_id,
        )
        return [self._to_entity(row) for row in rows]
