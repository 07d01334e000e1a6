"""
ClinExtract - Database Repositories
===================================

Store contracts and their PostgreSQL implementations.
"""

from clinextract.database.repositories.base import (
    BaseRepository,
    DocumentSource,
    DocumentStore,
    FileSystemDocumentSource,
    RecordStore,
    TemplateStore,
)
from clinextract.database.repositories.template import TemplateRepository
from clinextract.database.repositories.document import DocumentRepository
from clinextract.database.repositories.record import RecordRepository

__all__ = [
    'BaseRepository',
    'DocumentSource',
    'DocumentStore',
    'FileSystemDocumentSource',
    'RecordStore',
    'TemplateStore',
    'TemplateRepository',
    'DocumentRepository',
    'RecordRepository',
]
