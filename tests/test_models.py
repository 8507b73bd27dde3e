import json

import pytest

from marksheet_ocr.models import (
    AIUsage,
    ExtractedMarksheet,
    ExtractionFailure,
    PaperType,
    ResultStatus,
    SubjectRecord,
    ValueSource,
)


@pytest.mark.parametrize(
    "token, expected",
    [
        ("PASS", ResultStatus.PASS),
        ("passed", ResultStatus.PASS),
        ("P", ResultStatus.PASS),
        ("F", ResultStatus.FAIL),
        ("Fail", ResultStatus.FAIL),
        ("RA", ResultStatus.FAIL),
        ("absent", ResultStatus.FAIL),
        (True, ResultStatus.PASS),
        ("Distinction", None),
        ("", None),
        (1, None),
    ],
)
def test_result_status_parse(token, expected):
    assert ResultStatus.parse(token) == expected


def test_paper_type_parse():
    assert PaperType.parse("allied") == PaperType.ALLIED
    assert PaperType.parse(" Practical ") == PaperType.PRACTICAL
    assert PaperType.parse("Non-Major") == PaperType.NON
    assert PaperType.parse("theory") is None
    assert PaperType.parse(None) is None


def test_subject_record_defaults():
    subject = SubjectRecord("  Data   Structures ", 70, result=ResultStatus.PASS)
    assert subject.subject_name == "Data Structures"
    assert subject.paper_type == PaperType.CORE
    assert subject.result_source == ValueSource.DOCUMENT
    assert subject.name_key == "datastructures"


def test_crud_row_with_columns():
    subject = SubjectRecord("MATHEMATICS", 70, internal_marks=18, external_marks=52, max_marks=100)
    assert subject.to_crud_row() == {
        "name": "MATHEMATICS",
        "mark": 52,
        "paper_type": "CORE",
        "overall_max_marks": 75,
        "internal_marks": 18,
    }


def test_crud_row_single_mark():
    row = SubjectRecord("Physics Lab", 85, paper_type=PaperType.PRACTICAL, max_marks=100).to_crud_row()
    assert row["mark"] == 85
    assert row["internal_marks"] == 0
    assert row["overall_max_marks"] == 100
    assert row["paper_type"] == "PRACTICAL"

    row = SubjectRecord("Tamil", 60).to_crud_row()
    assert row["overall_max_marks"] == 75


def test_crud_row_derives_external_from_internal():
    row = SubjectRecord("English", 60, internal_marks=20).to_crud_row()
    assert row["mark"] == 40
    assert row["internal_marks"] == 20


def test_subject_from_dict_restores_sources():
    data = SubjectRecord(
        "Allied Physics", 55, paper_type=PaperType.ALLIED,
        result=ResultStatus.PASS, result_source=ValueSource.COMPUTED,
    ).to_dict()
    subject = SubjectRecord.from_dict(data)
    assert subject.paper_type == PaperType.ALLIED
    assert subject.result_is_computed


def test_marksheet_to_dict_is_json_serializable():
    marksheet = ExtractedMarksheet(
        student_name="PRIYA SHARMA",
        register_number="21CS1042",
        subjects=[SubjectRecord("MATHEMATICS", 70, result=ResultStatus.PASS)],
        total_marks="70",
        total_marks_source=ValueSource.COMPUTED,
        confidence=82,
        method="ocr",
    )
    data = json.loads(json.dumps(marksheet.to_dict()))

    assert data["subjects"][0]["result"] == "PASS"
    assert data["total_marks_source"] == "computed"
    assert data["overall_result"] is None
    assert data["stats"]["counts"]["subjects_found"] == 0
    assert marksheet.subjects_marks_sum == 70
    assert not marksheet.is_low_confidence


def test_form_dict_shape():
    marksheet = ExtractedMarksheet(
        student_name="PRIYA SHARMA",
        register_number="21CS1042",
        subjects=[SubjectRecord("Tamil", 81)],
    )
    form = marksheet.to_form_dict()
    assert form["name"] == "PRIYA SHARMA"
    assert form["regNo"] == "21CS1042"
    assert form["subjects"][0]["name"] == "Tamil"


def test_failure_to_dict():
    failure = ExtractionFailure("Could not extract", details={"reasons": ["x"]})
    assert failure.to_dict() == {"success": False, "message": "Could not extract", "details": {"reasons": ["x"]}}


def test_ai_usage_accumulates():
    usage = AIUsage()
    usage.add_call(1000, 200, cost_usd=0.01)
    usage.add_call(500, 100)
    assert usage.calls_count == 2
    assert usage.total_input_tokens == 1500
    assert usage.total_output_tokens == 300
    assert usage.total_cost_usd == pytest.approx(0.01)
