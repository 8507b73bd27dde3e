"""
Single-field extractors: student name, register number, total marks and
overall result.

Each extractor tries an ordered list of patterns, from explicit labels
("Register Number: ...") matched over the whole text down to bare shape
heuristics matched line by line. The first value that survives the
plausibility filter wins. Extractors are pure and return None on a miss.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence

from ..models import ResultStatus
from .keywords import COLUMN_HEADER_WORDS, HEADER_PHRASE_RE, line_words
from .normalizer import COLUMN_SEPARATOR, NormalizedText


# ==================== NAME ====================

_NAME_LABEL_RES: tuple[Pattern[str], ...] = (
    re.compile(r"\b(?:student'?s?|candidate'?s?)\s+name\b[ \t]*[:\-.]?[ \t]*([A-Za-z][^\n]{1,100})", re.I),
    re.compile(r"\bname\s+of\s+(?:the\s+)?(?:candidate|student)\b[ \t]*[:\-.]?[ \t]*([A-Za-z][^\n]{1,100})", re.I),
    re.compile(r"(?<![A-Za-z'])name[ \t]*[:\-][ \t]*([A-Za-z][^\n]{1,100})", re.I),
)

# "<word> Name:" labels that name something other than the student
_OTHER_NAME_OWNERS = frozenset({
    "subject", "father", "father's", "fathers", "mother", "mother's", "mothers",
    "college", "course", "exam", "examination", "institution", "institute",
    "programme", "program", "school", "guardian", "parent", "parent's", "paper",
})

_NAME_LINE_RE = re.compile(r"^(?:student\s+)?name\s+([A-Za-z][A-Za-z .']{2,80})$", re.I)

_NAME_TRAILING_LABEL_RE = re.compile(
    r"\s+(?:reg(?:ister|istration)?|roll|enrol\w*|seat|d\.?\s?o\.?\s?b|dob|date|class|course|"
    r"programme|program|branch|sem(?:ester)?|father|mother|gender|sex|age)\b.*$",
    re.I,
)
_NAME_VALID_RE = re.compile(r"^[A-Za-z][A-Za-z .']*$")
_CAPITALIZED_WORD_RE = re.compile(r"^[A-Z][A-Za-z.']*$")


_NON_NAME_WORDS = frozenset({
    "subject", "subjects", "marks", "mark", "total", "result", "results", "internal", "external",
    "grade", "credits", "semester", "theory", "practical", "pass", "fail", "absent",
    "university", "college", "institute", "school", "board", "government", "department",
    "statement", "certificate", "provisional", "degree", "bachelor", "master", "science",
    "arts", "commerce", "engineering", "technology", "autonomous", "affiliated", "office",
    "controller", "lab", "project", "viva", "allied", "elective", "core",
})

# Words that mark a line as a subject title rather than a person
_SUBJECT_WORDS = frozenset({
    "mathematics", "maths", "physics", "chemistry", "biology", "botany", "zoology", "english",
    "economics", "history", "geography", "statistics", "accountancy", "accounting", "computer",
    "programming", "systems", "operating", "networks", "database", "algorithms", "structures",
    "data", "language", "literature", "analysis", "management", "studies", "environmental",
    "applications", "foundation", "principles", "introduction", "fundamentals",
})

NAME_MIN_LEN = 3
NAME_MAX_LEN = 80
POSITIONAL_NAME_SCAN_LINES = 10

# "21CS101  18  52  PASS": a code, then numbers, no name
_CODE_ROW_RE = re.compile(r"^(?:[A-Z]{2,6}\d{2,5}[A-Z]?|\d{2}[A-Z]{2,6}\d{2,4})\s+\d", re.I)


def clean_name(value: str) -> Optional[str]:
    """
    Trim what a greedy label match dragged along.

    Cuts at the next column, at a trailing label (Reg No, DOB, ...) and
    drops trailing tokens that carry digits (codes, numbers).
    """
    value = value.split(COLUMN_SEPARATOR)[0]
    value = _NAME_TRAILING_LABEL_RE.sub("", value)

    tokens = value.split()
    while tokens and (any(ch.isdigit() for ch in tokens[-1]) or not any(ch.isalpha() for ch in tokens[-1])):
        tokens.pop()
    value = " ".join(tokens).strip(" .-:,'")

    if not (NAME_MIN_LEN <= len(value) <= NAME_MAX_LEN):
        return None
    if not _NAME_VALID_RE.match(value):
        return None
    return value


def _looks_like_person_name(line: str) -> bool:
    """2-5 capitalized words, no digits, no header or subject vocabulary."""
    if any(ch.isdigit() for ch in line):
        return False
    words = line.replace(COLUMN_SEPARATOR, " ").split()
    # single words are towns or headings, not full names
    if not 2 <= len(words) <= 5:
        return False
    if not all(_CAPITALIZED_WORD_RE.match(w) for w in words):
        return False
    if HEADER_PHRASE_RE.search(line):
        return False
    words = line_words(line)
    if all(w in COLUMN_HEADER_WORDS for w in words):
        return False
    if any(w in _NON_NAME_WORDS or w in _SUBJECT_WORDS for w in words):
        return False
    return True


def extract_student_name(full_text: str, lines: Sequence[str]) -> Optional[str]:
    """Extract the student's name, or None."""
    for pattern in _NAME_LABEL_RES:
        for match in pattern.finditer(full_text):
            if _owned_by_other(full_text, match.start()):
                continue
            name = clean_name(match.group(1))
            if name:
                return name

    for line in lines:
        match = _NAME_LINE_RE.match(line)
        if match:
            name = clean_name(match.group(1))
            if name:
                return name

    head = lines[:POSITIONAL_NAME_SCAN_LINES]
    for index, line in enumerate(head):
        if _looks_like_person_name(line) and not _names_a_code_row(lines, index):
            name = clean_name(line)
            if name:
                return name

    return None


def _names_a_code_row(lines: Sequence[str], index: int) -> bool:
    """True when the next line is a bare subject-code row, which takes this line as its name."""
    return index + 1 < len(lines) and bool(_CODE_ROW_RE.match(lines[index + 1]))

def _owned_by_other(text: str, label_start: int) -> bool:
    """True when the word before 'Name' makes it e.g. a father's name."""
    preceding = text[max(0, label_start - 25):label_start].split()
    return bool(preceding) and preceding[-1].lower().rstrip(":") in _OTHER_NAME_OWNERS


# ==================== REGISTER NUMBER ====================

_REG_VALUE = r"([A-Za-z0-9][A-Za-z0-9/\-]{3,25})"

_REG_LABEL_RES: tuple[Pattern[str], ...] = (
    re.compile(
        r"\b(?:register|registration|regn|reg)\b\.?\s*(?:number|num|no)?\.?\s*[:\-#.]?\s*" + _REG_VALUE,
        re.I,
    ),
    re.compile(
        r"\b(?:roll|enrol(?:l)?(?:ment)?|seat|hall\s*ticket|admission|university|candidate)\b\.?\s*"
        r"(?:number|num|no|id)\b\.?\s*[:\-#.]?\s*" + _REG_VALUE,
        re.I,
    ),
)

# Bare shapes, e.g. 21CS1042, URK21CS1042, 2113141058
_REG_SHAPE_RES: tuple[Pattern[str], ...] = (
    re.compile(r"\b(\d{2}[A-Z]{2,5}\d{2,6})\b"),
    re.compile(r"\b([A-Z]{2,5}\d{2}[A-Z]{0,5}\d{3,8})\b"),
    re.compile(r"\b(\d{8,12})\b"),
)

_REG_VALID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9/\-]{3,19}$")
# A standalone 1-3 digit column means the line is a marks row
_MARK_COLUMN_RE = re.compile(r"(?:^|\s)\d{1,3}(?:\s|$)")


def clean_register_number(value: str) -> Optional[str]:
    """Plausibility filter: 4-20 alphanumerics (with / or -), at least one digit."""
    value = value.strip().strip("-/.").upper()
    if not _REG_VALID_RE.match(value):
        return None
    if not any(ch.isdigit() for ch in value):
        return None
    return value


def extract_register_number(full_text: str, lines: Sequence[str]) -> Optional[str]:
    """Extract the register number, or None."""
    for pattern in _REG_LABEL_RES:
        for match in pattern.finditer(full_text):
            reg = clean_register_number(match.group(1))
            if reg:
                return reg

    for pattern in _REG_SHAPE_RES:
        for line in lines:
            if _MARK_COLUMN_RE.search(line):
                continue
            match = pattern.search(line)
            if match:
                reg = clean_register_number(match.group(1))
                if reg:
                    return reg

    return None


# ==================== TOTAL MARKS ====================

_TOTAL_LABEL_RE = re.compile(
    r"\b(?:grand\s+total|total\s+marks(?:\s+(?:obtained|secured|awarded))?|marks\s+(?:obtained|secured)|"
    r"aggregate(?:\s+marks)?)\b[ \t]*[:\-=]?[ \t]*(\d{1,4})(?:[ \t]*/[ \t]*\d{1,4})?",
    re.I,
)
_TOTAL_LINE_RE = re.compile(
    r"^total\b[\s:=\-]*(\d{1,4})(?:\s*(?:/|out\s+of)?\s*\d{1,4})?(?:\s+[A-Za-z]+)?$",
    re.I,
)


def clean_total(value: str) -> Optional[str]:
    value = value.strip()
    if not value.isdigit() or not 1 <= len(value) <= 4:
        return None
    if int(value) <= 0:
        return None
    return str(int(value))


def extract_total_marks(full_text: str, lines: Sequence[str]) -> Optional[str]:
    """Extract the document's stated total, or None."""
    for match in _TOTAL_LABEL_RE.finditer(full_text):
        total = clean_total(match.group(1))
        if total:
            return total

    for line in lines:
        match = _TOTAL_LINE_RE.match(line)
        if match:
            total = clean_total(match.group(1))
            if total:
                return total

    return None


# ==================== OVERALL RESULT ====================

_RESULT_LABEL_RE = re.compile(
    r"\b(?:overall\s+result|final\s+result|result|status)\b[ \t]*[:\-]?[ \t]*"
    r"(pass(?:ed)?|fail(?:ed)?|re-?appear|absent)\b(?![ \t]*/)",
    re.I,
)
_CLASS_AWARD_RE = re.compile(
    r"\b(?:first\s+class(?:\s+with\s+distinction)?|second\s+class|third\s+class|distinction)\b",
    re.I,
)


def extract_overall_result(full_text: str, lines: Sequence[str]) -> Optional[ResultStatus]:
    """Extract the document's stated overall result, or None."""
    for match in _RESULT_LABEL_RE.finditer(full_text):
        result = ResultStatus.parse(match.group(1))
        if result:
            return result

    # A class award is only printed for candidates who passed
    for line in lines:
        if _CLASS_AWARD_RE.search(line):
            return ResultStatus.PASS

    return None


# ==================== ALL FIELDS ====================

@dataclass(frozen=True)
class FieldValues:
    """Header fields found in one document; None means not found."""
    student_name: Optional[str] = None
    register_number: Optional[str] = None
    total_marks: Optional[str] = None
    overall_result: Optional[ResultStatus] = None


def extract_fields(normalized: NormalizedText) -> FieldValues:
    """Run every field extractor over one normalized document."""
    text, lines = normalized.full_text, normalized.lines
    return FieldValues(
        student_name=extract_student_name(text, lines),
        register_number=extract_register_number(text, lines),
        total_marks=extract_total_marks(text, lines),
        overall_result=extract_overall_result(text, lines),
    )
