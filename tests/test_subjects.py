import pytest

from marksheet_ocr.models import PaperType, ResultStatus, ValueSource
from marksheet_ocr.parsing import normalize_text
from marksheet_ocr.parsing.subjects import (
    PATTERNS,
    SubjectSettings,
    clean_subject_name,
    extract_subjects,
    match_line,
    resolve_result,
)


def _subjects(*lines, settings=None):
    return extract_subjects(list(lines), settings).subjects


def test_pattern_order_is_fixed():
    assert [p.name for p in PATTERNS] == [
        "six_column",
        "internal_external_total",
        "internal_external",
        "total_max",
        "combined_expression",
        "single_mark",
        "internal_external_no_result",
        "code_prefixed",
        "bare_code",
    ]


def test_six_column_row():
    (subject,) = _subjects("MATHEMATICS  18  52  70  100  PASS")
    assert subject.subject_name == "MATHEMATICS"
    assert subject.marks == 70
    assert subject.result == ResultStatus.PASS
    assert subject.result_source == ValueSource.DOCUMENT
    assert (subject.internal_marks, subject.external_marks, subject.max_marks) == (18, 52, 100)


def test_internal_external_total_row():
    extraction = extract_subjects(["MATHEMATICS  18  52  70  PASS"])
    (subject,) = extraction.subjects
    assert subject.subject_name == "MATHEMATICS"
    assert subject.marks == 70
    assert (subject.internal_marks, subject.external_marks) == (18, 52)
    assert subject.result == ResultStatus.PASS
    assert extraction.pattern_hits["internal_external_total"] == 1
    assert extraction.rejected == 0


def test_internal_external_total_row_must_add_up():
    assert match_line("MATHEMATICS  18  52  90  PASS", SubjectSettings()) == (None, None)


def test_internal_external_row():
    (subject,) = _subjects("ENGLISH  20  55  PASS")
    assert subject.subject_name == "ENGLISH"
    assert subject.marks == 75
    assert subject.result == ResultStatus.PASS


def test_total_max_row_when_first_number_exceeds_internal_cap():
    name, match = match_line("PHYSICS  68  100  PASS", SubjectSettings())
    assert name == "total_max"
    assert match.marks == 68
    assert match.max_marks == 100


def test_combined_expression_row():
    (subject,) = _subjects("CHEMISTRY  021+039  PASS")
    assert subject.marks == 60
    assert (subject.internal_marks, subject.external_marks) == (21, 39)


def test_single_mark_row_with_short_result_token():
    (subject,) = _subjects("TAMIL  81  P")
    assert subject.marks == 81
    assert subject.result == ResultStatus.PASS


@pytest.mark.parametrize("token", ["F", "FAIL", "RA", "AB", "ABSENT"])
def test_fail_tokens(token):
    (subject,) = _subjects(f"ZOOLOGY  12  {token}")
    assert subject.result == ResultStatus.FAIL
    assert subject.result_source == ValueSource.DOCUMENT


def test_row_without_result_gets_computed_result():
    (passed,) = _subjects("HISTORY  22  61")
    assert passed.marks == 83
    assert passed.result == ResultStatus.PASS
    assert passed.result_source == ValueSource.COMPUTED
    assert passed.result_is_computed

    (failed,) = _subjects("ECONOMICS  10  20  30  100")
    assert failed.marks == 30
    assert failed.max_marks == 100
    assert failed.result == ResultStatus.FAIL
    assert failed.result_source == ValueSource.COMPUTED


def test_leading_serial_number_is_stripped():
    (subject,) = _subjects("1. Data Structures  18  52  PASS")
    assert subject.subject_name == "Data Structures"
    assert subject.marks == 70


def test_code_prefixed_row():
    (subject,) = _subjects("21CS101  Data Structures  18  52  PASS")
    assert subject.subject_name == "Data Structures"
    assert subject.code == "21CS101"
    assert subject.marks == 70


def test_bare_code_row_takes_name_from_preceding_line():
    extraction = extract_subjects(["Operating Systems", "21CS102  20  48  PASS"])
    (subject,) = extraction.subjects
    assert subject.subject_name == "Operating Systems"
    assert subject.code == "21CS102"
    assert subject.marks == 68
    assert extraction.pattern_hits["bare_code"] == 1


def test_bare_code_lookback_skips_headers_and_numbered_lines():
    lines = [
        "Operating Systems",
        "Subject Code  Internal  External  Result",
        "21CS102  20  48  PASS",
    ]
    (subject,) = _subjects(*lines)
    assert subject.subject_name == "Operating Systems"


def test_bare_code_without_name_uses_code():
    (subject,) = _subjects("ENGLISH  20  55  PASS", "21CS102  20  48  PASS")[1:]
    assert subject.subject_name == "21CS102"


def test_lookback_is_limited():
    lines = ["Operating Systems", "x" * 3 + " 10", "yyy 11", "zzz 12", "21CS102  20  48  PASS"]
    settings = SubjectSettings(lookback_lines=3)
    subjects = _subjects(*lines, settings=settings)
    assert subjects[-1].subject_name == "21CS102"


def test_header_lines_are_never_subjects():
    extraction = extract_subjects([
        "TOTAL",
        "TOTAL  450  600  PASS",
        "Subject  Internal  External  Result",
        "Semester 5",
        "Grand Total 450",
    ])
    assert extraction.subjects == []
    assert extraction.skipped == 5


def test_duplicate_names_are_suppressed_first_wins():
    extraction = extract_subjects([
        "MATHEMATICS  18  52  70  100  PASS",
        "Mathematics  20  50  70  100  PASS",
    ])
    (subject,) = extraction.subjects
    assert subject.internal_marks == 18
    assert extraction.rejected == 1


def test_unparseable_numeric_line_is_rejected():
    extraction = extract_subjects(["PHYSICS  95  40  PASS"])
    assert extraction.subjects == []
    assert extraction.rejected == 1


def test_paper_type_is_classified_from_name():
    subjects = _subjects(
        "Physics Lab  18  52  PASS",
        "Allied Mathematics - I  20  50  PASS",
        "Tamil  22  48  PASS",
    )
    assert [s.paper_type for s in subjects] == [PaperType.PRACTICAL, PaperType.ALLIED, PaperType.CORE]
    assert subjects[1].subject_name == "Allied Mathematics - I"


def test_clean_subject_name():
    assert clean_subject_name("Total") is None
    assert clean_subject_name("P.E") is None
    assert clean_subject_name("  Tamil - I -") == "Tamil - I"


def test_resolve_result_threshold():
    settings = SubjectSettings(pass_fraction=0.40)
    assert resolve_result(None, 40, None, settings) == (ResultStatus.PASS, ValueSource.COMPUTED)
    assert resolve_result(None, 39, None, settings) == (ResultStatus.FAIL, ValueSource.COMPUTED)
    assert resolve_result(None, 30, 75, settings) == (ResultStatus.PASS, ValueSource.COMPUTED)
    assert resolve_result("p", 0, None, settings) == (ResultStatus.PASS, ValueSource.DOCUMENT)


def test_empty_input_yields_no_subjects():
    assert extract_subjects([]).subjects == []
    assert extract_subjects(normalize_text("").lines).subjects == []


def test_full_marksheet(sample_text):
    extraction = extract_subjects(normalize_text(sample_text).lines)
    assert [(s.subject_name, s.marks) for s in extraction.subjects] == [
        ("MATHEMATICS", 70),
        ("ENGLISH", 75),
        ("Physics Practical", 85),
    ]
    assert extraction.subjects[2].paper_type == PaperType.PRACTICAL
