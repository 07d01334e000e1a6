"""
Built-in disease templates and idempotent seeding.
"""

from typing import Any, Dict, List

from clinextract.core.logging_config import get_logger
from clinextract.database.repositories.base import TemplateStore
from clinextract.shared.models import DiseaseTemplate

logger = get_logger(__name__)

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        "name": "Diabetes",
        "keywords": ["diabetes", "blood sugar", "glucose", "insulin", "diabetic"],
        "fields": [
            {
                "name": "blood_sugar_level",
                "field_type": "number",
                "required": True,
                "extraction_pattern": r"blood sugar[:\s]+(\d+)",
            },
            {
                "name": "insulin_type",
                "field_type": "text",
                "required": False,
                "extraction_pattern": r"insulin[:\s]+([^\n\r]+)",
            },
            {"name": "diagnosis_date", "field_type": "date", "required": False},
        ],
    },
    {
        "name": "Hypertension",
        "keywords": ["hypertension", "blood pressure", "bp", "high pressure"],
        "fields": [
            {
                "name": "systolic_pressure",
                "field_type": "number",
                "required": True,
                "extraction_pattern": r"systolic[:\s]+(\d+)",
            },
            {
                "name": "diastolic_pressure",
                "field_type": "number",
                "required": True,
                "extraction_pattern": r"diastolic[:\s]+(\d+)",
            },
            {"name": "medication", "field_type": "text", "required": False},
        ],
    },
    {
        "name": "Heart Disease",
        "keywords": ["heart disease", "cardiac", "heart attack", "coronary", "cardiovascular"],
        "fields": [
            {
                "name": "heart_rate",
                "field_type": "number",
                "required": False,
                "extraction_pattern": r"heart rate[:\s]+(\d+)",
            },
            {"name": "ejection_fraction", "field_type": "number", "required": False},
            {"name": "chest_pain", "field_type": "boolean", "required": False},
        ],
    },
]


def default_templates() -> List[DiseaseTemplate]:
    return [DiseaseTemplate.from_dict(data) for data in DEFAULT_TEMPLATES]


async def seed_default_templates(store: TemplateStore) -> List[DiseaseTemplate]:
    """Insert the built-in templates whose names are not present yet."""
    existing = {t.name.lower() for t in await store.list_templates()}
    created = []
    for template in default_templates():
        if template.name.lower() in existing:
            logger.debug("template_exists", template=template.name)
            continue
        created.append(await store.create_template(template))

    logger.info("templates_seeded", created=len(created))
    return created
