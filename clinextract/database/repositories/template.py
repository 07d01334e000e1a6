"""
ClinExtract - Disease Template Repository
=========================================
"""

import json
from typing import Any, Dict, List

import asyncpg

from clinextract.database.repositories.base import BaseRepository, TemplateStore
from clinextract.shared.exceptions import PersistenceError
from clinextract.shared.models import DiseaseTemplate


class TemplateRepository(BaseRepository, TemplateStore):
    """PostgreSQL-backed template store."""

    table_name = "disease_templates"

    def _to_entity(self, row: Dict[str, Any]) -> DiseaseTemplate:
        fields = row.get("fields") or []
        if isinstance(fields, str):
            fields = json.loads(fields)
        return DiseaseTemplate.from_dict({
            "id": str(row["id"]),
            "name": row["name"],
            "keywords": list(row.get("keywords") or []),
            "fields": fields,
            "created_at": row.get("created_at"),
        })

    async def list_templates(self) -> List[DiseaseTemplate]:
        rows = await self._fetch(f"SELECT * FROM {self.table_name} ORDER BY id")
        return [self._to_entity(row) for row in rows]

    async def create_template(self, template: DiseaseTemplate) -> DiseaseTemplate:
        query = f"""
            INSERT INTO {self.table_name} (id, name, keywords, fields)
            VALUES ($1, $2, $3, $4)
            RETURNING *
        """
        try:
            row = await self._fetchrow(
                query,
                template.id,
                template.name,
                list(template.keywords),
                json.dumps([f.to_dict() for f in template.fields]),
            )
        except PersistenceError as e:
            if isinstance(e.__cause__, asyncpg.UniqueViolationError):
                raise PersistenceError(f"Template {template.name!r} already exists") from e.__cause__
            raise
        return self._to_entity(row)
