"""
ClinExtract - Persistence Layer
===============================

Store contracts consumed by the pipeline, with in-memory and
PostgreSQL (asyncpg) implementations.

Usage:
    from clinextract.database import DatabaseConnection, TemplateRepository

    db = DatabaseConnection("postgresql://...")
    await db.connect()
    templates = await TemplateRepository(db).list_templates()
"""

from clinextract.database.connection import DatabaseConnection

from clinextract.database.repositories import (
    DocumentSource,
    DocumentStore,
    FileSystemDocumentSource,
    RecordStore,
    TemplateStore,
    DocumentRepository,
    RecordRepository,
    TemplateRepository,
)

from clinextract.database.memory import (
    InMemoryDocumentStore,
    InMemoryRecordStore,
    InMemoryTemplateStore,
)

from clinextract.database.seed import default_templates, seed_default_templates
