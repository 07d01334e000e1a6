"""
ClinExtract - Model Unit Tests
"""

from datetime import date

import pytest

from clinextract.shared.enums import FieldType, OutcomeStatus, ProcessingStatus
from clinextract.shared.exceptions import TemplateValidationError
from clinextract.shared.models import (
    DiseaseTemplate,
    ExtractedData,
    FieldSpec,
    FieldValue,
    MedicalRecord,
    Outcome,
    RunSummary,
)


class TestFieldSpec:

    def test_admin_shape(self):
        spec = FieldSpec.from_dict({
            "fieldName": "blood_sugar_level",
            "fieldType": "Number",
            "required": True,
            "extractionPattern": r"blood sugar[:\s]+(\d+)",
        })
        assert spec.name == "blood_sugar_level"
        assert spec.field_type is FieldType.NUMBER
        assert spec.required is True

    def test_blank_pattern_is_none(self):
        spec = FieldSpec.from_dict({"name": "x", "field_type": "text", "extraction_pattern": ""})
        assert spec.extraction_pattern is None

    def test_unknown_type(self):
        with pytest.raises(TemplateValidationError):
            FieldSpec.from_dict({"name": "x", "field_type": "blob"})

    def test_missing_name(self):
        with pytest.raises(TemplateValidationError):
            FieldSpec.from_dict({"field_type": "text"})


class TestDiseaseTemplate:

    def test_keywords_deduplicated_case_insensitively(self):
        template = DiseaseTemplate.from_dict({
            "name": "Diabetes",
            "keywords": ["Diabetes", "insulin", "diabetes", "  ", "INSULIN"],
        })
        assert template.keywords == ("Diabetes", "insulin")

    def test_generates_id(self):
        template = DiseaseTemplate.from_dict({"name": "Diabetes", "keywords": ["x"]})
        assert template.id

    def test_duplicate_field_names(self):
        with pytest.raises(TemplateValidationError):
            DiseaseTemplate.from_dict({
                "name": "Diabetes",
                "keywords": ["x"],
                "fields": [
                    {"name": "a", "field_type": "text"},
                    {"name": "a", "field_type": "number"},
                ],
            })

    def test_name_required(self):
        with pytest.raises(TemplateValidationError):
            DiseaseTemplate.from_dict({"keywords": ["x"]})

    def test_to_dict(self, diabetes_template):
        data = diabetes_template.to_dict()
        assert data["name"] == "Diabetes"
        assert data["fields"][0]["field_type"] == "number"
        assert DiseaseTemplate.from_dict(data) == diabetes_template


class TestFieldValue:

    def test_int_number_becomes_float(self):
        value = FieldValue.number(180)
        assert value.value == 180.0
        assert isinstance(value.value, float)

    @pytest.mark.parametrize("kind,raw", [
        (FieldType.NUMBER, "180"),
        (FieldType.TEXT, 12.0),
        (FieldType.DATE, "2020-01-01"),
        (FieldType.BOOLEAN, "yes"),
        (FieldType.NUMBER, True),
        (FieldType.TEXT, False),
    ])
    def test_kind_must_agree_with_value(self, kind, raw):
        with pytest.raises(TypeError):
            FieldValue(kind, raw)

    def test_date_json(self):
        value = FieldValue.date(date(2021, 3, 15))
        assert value.to_json() == "2021-03-15"
        assert FieldValue.from_json(FieldType.DATE, "2021-03-15T00:00:00") == value


class TestExtractedData:

    def test_rejects_raw_values(self):
        data = ExtractedData()
        with pytest.raises(TypeError):
            data["blood_sugar_level"] = 180.0
        with pytest.raises(TypeError):
            data["blood_sugar_level"] = None

    def test_preserves_insertion_order(self):
        data = ExtractedData()
        data["b"] = FieldValue.text("x")
        data["a"] = FieldValue.boolean(False)
        assert list(data) == ["b", "a"]

    def test_to_dict_and_tagged_json(self):
        data = ExtractedData({
            "blood_sugar_level": FieldValue.number(180.0),
            "diagnosis_date": FieldValue.date(date(2020, 1, 5)),
            "chest_pain": FieldValue.boolean(False),
        })
        assert data.to_dict() == {
            "blood_sugar_level": 180.0,
            "diagnosis_date": "2020-01-05",
            "chest_pain": False,
        }
        assert data.to_json()["diagnosis_date"] == {"type": "date", "value": "2020-01-05"}
        assert ExtractedData.from_json(data.to_json()) == data

    def test_value_of_absent_field(self):
        assert ExtractedData().value("missing") is None


class TestMedicalRecord:

    def test_create(self, diabetes_template):
        data = ExtractedData({"blood_sugar_level": FieldValue.number(180)})
        record = MedicalRecord.create("doc-1", "patient-1", diabetes_template, data, 100.0)

        assert record.template_id == "tpl-diabetes"
        assert record.disease_name == "Diabetes"
        assert record.verified is False
        assert record.to_dict()["extracted_data"] == {"blood_sugar_level": 180.0}


class TestRunSummary:

    def test_counts(self):
        summary = RunSummary(
            pages=[Outcome.ok("page 1"), Outcome.error("page 2", "boom")],
            fields=[Outcome.skipped("x"), Outcome.ok("y"), Outcome.ok("z")],
        )
        assert summary.page_counts == {"ok": 1, "skipped": 0, "error": 1}
        assert summary.field_counts == {"ok": 2, "skipped": 1, "error": 0}
        assert len(summary.to_dict()["outcomes"]) == 5


class TestProcessingStatus:

    @pytest.mark.parametrize("current,target,allowed", [
        (ProcessingStatus.PENDING, ProcessingStatus.PROCESSING, True),
        (ProcessingStatus.PENDING, ProcessingStatus.COMPLETED, False),
        (ProcessingStatus.PROCESSING, ProcessingStatus.COMPLETED, True),
        (ProcessingStatus.PROCESSING, ProcessingStatus.FAILED, True),
        (ProcessingStatus.COMPLETED, ProcessingStatus.PROCESSING, False),
        (ProcessingStatus.FAILED, ProcessingStatus.PENDING, False),
    ])
    def test_transitions(self, current, target, allowed):
        assert current.can_transition_to(target) is allowed

    def test_terminal_states(self):
        assert ProcessingStatus.COMPLETED.is_terminal
        assert ProcessingStatus.FAILED.is_terminal
        assert not ProcessingStatus.PROCESSING.is_terminal

    def test_predecessors(self):
        assert ProcessingStatus.predecessors(ProcessingStatus.FAILED) == {ProcessingStatus.PROCESSING}

    def test_outcome_status_values(self):
        assert [s.value for s in OutcomeStatus] == ["ok", "skipped", "error"]
