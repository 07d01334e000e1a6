"""
ClinExtract - Store Interfaces and Base Repository
==================================================

Abstract collaborator contracts consumed by the pipeline, and the asyncpg
base class shared by the PostgreSQL implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import asyncpg

from clinextract.core.logging_config import get_logger
from clinextract.shared.enums import ProcessingStatus
from clinextract.shared.exceptions import PersistenceError
from clinextract.shared.models import DiseaseTemplate, MedicalRecord

logger = get_logger(__name__)


# =============================================================================
# COLLABORATOR CONTRACTS
# =============================================================================

class TemplateStore(ABC):
    """Read access to disease templates."""

    @abstractmethod
    async def list_templates(self) -> List[DiseaseTemplate]:
        """All templates."""

    @abstractmethod
    async def create_template(self, template: DiseaseTemplate) -> DiseaseTemplate:
        """Insert a template (used by seeding and administration)."""

    async def get_by_name(self, name: str) -> Optional[DiseaseTemplate]:
        for template in await self.list_templates():
            if template.name.lower() == name.lower():
                return template
        return None


class DocumentStore(ABC):
    """Processing status and extracted text of uploaded documents."""

    @abstractmethod
    async def update_status(self, document_id: str, status: ProcessingStatus) -> None:
        """Transition a document's processing status."""

    @abstractmethod
    async def update_extracted_text(
        self,
        document_id: str,
        text: str,
        processed_at: datetime
    ) -> None:
        """Store the raw extracted text."""

    @abstractmethod
    async def get_status(self, document_id: str) -> ProcessingStatus:
        """Current processing status."""


class RecordStore(ABC):
    """Medical record persistence."""

    @abstractmethod
    async def create_record(self, record: MedicalRecord) -> MedicalRecord:
        """Persist a new medical record."""

    @abstractmethod
    async def list_for_document(self, document_id: str) -> List[MedicalRecord]:
        """Records created from a document."""


class DocumentSource(ABC):
    """Access to the original uploaded PDF."""

    @abstractmethod
    async def load(self, document_id: str) -> Tuple[bytes, Path]:
        """Return the PDF bytes and a filesystem path usable for rasterization."""


class FileSystemDocumentSource(DocumentSource):
    """
    Resolves documents stored as files under an upload directory.

    The document identifier is the file name relative to `root`
    (or an absolute path when `root` is None).
    """

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else None

    def resolve(self, document_id: str) -> Path:
        path = Path(document_id)
        if self.root is not None:
            path = (self.root / document_id).resolve()
            if self.root.resolve() not in path.parents:
                raise PersistenceError(f"Path escapes upload root: {document_id}")
        return path

    async def load(self, document_id: str) -> Tuple[bytes, Path]:
        path = self.resolve(document_id)
        try:
            return path.read_bytes(), path
        except OSError as e:
            raise PersistenceError(f"Cannot read document {document_id}: {e}") from e


# =============================================================================
# ASYNCPG BASE
# =============================================================================

class BaseRepository:
    """
    Base for asyncpg repositories.

    Wraps every driver error into PersistenceError so callers only handle
    the pipeline's own taxonomy.
    """

    table_name: str = ""

    def __init__(self, connection):
        """
        Args:
            connection: DatabaseConnection instance
        """
        self.db = connection

    async def _fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        try:
            rows = await self.db.fetch(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("query_failed", table=self.table_name, error=str(e))
            raise PersistenceError(f"{self.table_name} query failed: {e}") from e
        return [dict(row) for row in rows]

    async def _fetchrow(self, query: str, *args) -> Optional[Dict[str, Any]]:
        try:
            row = await self.db.fetchrow(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("query_failed", table=self.table_name, error=str(e))
            raise PersistenceError(f"{self.table_name} query failed: {e}") from e
        return dict(row) if row else None

    async def _execute(self, query: str, *args) -> str:
        try:
            return await self.db.execute(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("query_failed", table=self.table_name, error=str(e))
            raise PersistenceError(f"{self.table_name} update failed: {e}") from e

    @staticmethod
    def _affected_rows(status: str) -> int:
        """Row count from an asyncpg command tag such as 'UPDATE 1'."""
        try:
            return int(status.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0
