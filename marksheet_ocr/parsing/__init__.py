"""
Text parsing for recognized marksheets.

Contains the pure, side-effect free passes run over recognized text:
- normalizer: raw text to cleaned lines
- fields: student name, register number, total marks, overall result
- subjects: ordered row grammar producing SubjectRecords
- paper_type: CORE / ALLIED / PRACTICAL / NON classification
"""

from __future__ import annotations

from typing import Optional, Tuple

from .normalizer import COLUMN_SEPARATOR, NormalizedText, normalize_line, normalize_text
from .fields import (
    FieldValues,
    extract_fields,
    extract_student_name,
    extract_register_number,
    extract_total_marks,
    extract_overall_result,
)
from .subjects import (
    PATTERNS,
    SubjectExtraction,
    SubjectMatch,
    SubjectPattern,
    SubjectSettings,
    extract_subjects,
)
from .paper_type import classify_paper_type
from .keywords import is_header_line


def parse_marksheet_text(
    raw: str,
    settings: Optional[SubjectSettings] = None,
    min_line_length: int = 3,
) -> Tuple[NormalizedText, FieldValues, SubjectExtraction]:
    """Run normalization, field extraction and subject extraction over raw text."""
    normalized = normalize_text(raw, min_line_length=min_line_length)
    return normalized, extract_fields(normalized), extract_subjects(normalized.lines, settings)


__all__ = [
    # Normalizer
    "COLUMN_SEPARATOR",
    "NormalizedText",
    "normalize_line",
    "normalize_text",

    # Fields
    "FieldValues",
    "extract_fields",
    "extract_student_name",
    "extract_register_number",
    "extract_total_marks",
    "extract_overall_result",

    # Subjects
    "PATTERNS",
    "SubjectExtraction",
    "SubjectMatch",
    "SubjectPattern",
    "SubjectSettings",
    "extract_subjects",
    "classify_paper_type",
    "is_header_line",

    "parse_marksheet_text",
]
