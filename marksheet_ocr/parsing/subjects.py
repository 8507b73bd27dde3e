"""
Subject table extractor.

Turns normalized marksheet lines into SubjectRecord rows. Each supported
row layout is a named SubjectPattern; the patterns are tried in a fixed
priority order (most specific first) and the first one that accepts a
line stops evaluation of that line.

Layouts, in priority order:
    six_column                   MATHEMATICS  18  52  70  100  PASS
    internal_external_total      MATHEMATICS  18  52  70  PASS
    internal_external            ENGLISH  20  55  PASS
    total_max                    PHYSICS  68  100  PASS
    combined_expression          CHEMISTRY  021+039  PASS
    single_mark                  TAMIL  81  P
    internal_external_no_result  HISTORY  22  61
    code_prefixed                21CS101  Data Structures  18  52  PASS
    bare_code                    21CS101  18  52  PASS   (name from the line above)
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

from ..config import ExtractionConfig
from ..models import ResultStatus, SubjectRecord, ValueSource
from .keywords import RESERVED_NAMES, RESULT_TOKEN, is_header_line
from .paper_type import classify_paper_type


# ==================== TOKENS ====================

# Subject names never contain digits; roman numerals and punctuation are fine
NAME = r"(?P<name>[A-Za-z][A-Za-z&().,'/\-+ ]*?[A-Za-z).+])"
CODE = r"(?P<code>[A-Z]{2,6}\d{2,5}[A-Z]?|\d{2}[A-Z]{2,6}\d{2,4})"
NUMBER = r"\d{1,3}"
RESULT = RESULT_TOKEN
# One to four numeric columns, e.g. "18  52  70  100"
NUMBERS = rf"(?P<numbers>{NUMBER}(?:\s+{NUMBER}){{0,3}})"

_SERIAL_RE = re.compile(r"^\d{1,2}[.)]?\s+(?=[A-Za-z])")
_EMBEDDED_NUMBER_RE = re.compile(r"\d{2,}")
_DIGIT_RE = re.compile(r"\d")


@dataclass(frozen=True)
class SubjectSettings:
    """Numeric limits the grammar uses to disambiguate columns."""
    pass_fraction: float = 0.40
    default_max_marks: int = 100
    internal_max_marks: int = 30
    external_max_marks: int = 100
    lookback_lines: int = 3

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "SubjectSettings":
        return cls(
            pass_fraction=config.pass_fraction,
            default_max_marks=config.default_max_marks,
            internal_max_marks=config.internal_max_marks,
            external_max_marks=config.external_max_marks,
            lookback_lines=config.lookback_lines,
        )


@dataclass(frozen=True)
class SubjectMatch:
    """
    Typed partial result of one pattern.

    An empty name means the row carried only a code and the name must be
    resolved from the surrounding lines.
    """
    name: str
    marks: int
    result_token: Optional[str] = None
    internal_marks: Optional[int] = None
    external_marks: Optional[int] = None
    max_marks: Optional[int] = None
    code: Optional[str] = None


Builder = Callable[["re.Match[str]", SubjectSettings], Optional[SubjectMatch]]


@dataclass(frozen=True)
class SubjectPattern:
    """A named row layout: an anchored regex plus a builder that validates it."""
    name: str
    regex: Pattern[str]
    builder: Builder

    def match(self, line: str, settings: SubjectSettings) -> Optional[SubjectMatch]:
        m = self.regex.match(line)
        if not m:
            return None
        return self.builder(m, settings)


@dataclass
class SubjectExtraction:
    """Subjects found in one document plus line accounting for diagnostics."""
    subjects: List[SubjectRecord] = field(default_factory=list)
    skipped: int = 0  # header/footer and number-free lines
    rejected: int = 0  # lines with numbers that no layout accepted
    pattern_hits: Counter = field(default_factory=Counter)


# ==================== BUILDERS ====================

def _int(m: "re.Match[str]", group: str) -> Optional[int]:
    value = m.group(group)
    return int(value) if value is not None else None


def _result(m: "re.Match[str]") -> Optional[str]:
    return m.groupdict().get("result")


def _build_six_column(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    internal, external, max_marks = _int(m, "internal"), _int(m, "external"), _int(m, "max")
    if internal + external > max_marks:
        return None
    return SubjectMatch(
        name=m.group("name"),
        marks=internal + external,
        result_token=_result(m),
        internal_marks=internal,
        external_marks=external,
        max_marks=max_marks,
    )


def _build_internal_external_total(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    internal, external, total = _int(m, "internal"), _int(m, "external"), _int(m, "total")
    if internal > settings.internal_max_marks or external > settings.external_max_marks:
        return None
    # Columns must add up, "PHYSICS 18 70 100 PASS" is not internal/external/total
    if internal + external != total:
        return None
    return SubjectMatch(
        name=m.group("name"),
        marks=total,
        result_token=_result(m),
        internal_marks=internal,
        external_marks=external,
    )


def _build_internal_external(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    internal, external = _int(m, "internal"), _int(m, "external")
    # "PHYSICS 68 100 PASS" is total/max, not internal/external
    if internal > settings.internal_max_marks or external > settings.external_max_marks:
        return None
    return SubjectMatch(
        name=m.group("name"),
        marks=internal + external,
        result_token=_result(m),
        internal_marks=internal,
        external_marks=external,
    )


def _build_total_max(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    total, max_marks = _int(m, "total"), _int(m, "max")
    if total > max_marks:
        return None
    return SubjectMatch(name=m.group("name"), marks=total, result_token=_result(m), max_marks=max_marks)


def _build_combined_expression(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    internal, external = _int(m, "internal"), _int(m, "external")
    return SubjectMatch(
        name=m.group("name"),
        marks=internal + external,
        result_token=_result(m),
        internal_marks=internal,
        external_marks=external,
    )


def _build_single_mark(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    return SubjectMatch(name=m.group("name"), marks=_int(m, "mark"), result_token=_result(m))


def _build_internal_external_no_result(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    internal, external = _int(m, "internal"), _int(m, "external")
    if internal > settings.internal_max_marks or external > settings.external_max_marks:
        return None
    # Two trailing columns are total and max; a single one is the total
    max_marks = _int(m, "extra2")
    if max_marks is not None and internal + external > max_marks:
        return None
    return SubjectMatch(
        name=m.group("name"),
        marks=internal + external,
        internal_marks=internal,
        external_marks=external,
        max_marks=max_marks,
    )


def interpret_columns(values: Sequence[int], settings: SubjectSettings) -> Optional[SubjectMatch]:
    """
    Read a run of numeric columns the same way the named layouts do.

    Returns a nameless SubjectMatch (marks and column detail only), or
    None when the numbers fit no layout.
    """
    if len(values) == 1:
        return SubjectMatch(name="", marks=values[0])

    first, second = values[0], values[1]
    split = first <= settings.internal_max_marks and second <= settings.external_max_marks

    if len(values) == 4:
        if not split or first + second > values[3]:
            return None
        return SubjectMatch(
            name="", marks=first + second, internal_marks=first, external_marks=second, max_marks=values[3]
        )
    if split:
        return SubjectMatch(name="", marks=first + second, internal_marks=first, external_marks=second)
    if len(values) == 2 and first <= second:
        return SubjectMatch(name="", marks=first, max_marks=second)
    return None


def _build_coded(m, settings: SubjectSettings) -> Optional[SubjectMatch]:
    values = [int(v) for v in m.group("numbers").split()]
    columns = interpret_columns(values, settings)
    if columns is None:
        return None
    return SubjectMatch(
        name=m.groupdict().get("name") or "",
        marks=columns.marks,
        result_token=_result(m),
        internal_marks=columns.internal_marks,
        external_marks=columns.external_marks,
        max_marks=columns.max_marks,
        code=m.group("code").upper(),
    )


# ==================== GRAMMAR ====================

def _row(body: str) -> Pattern[str]:
    return re.compile(rf"^{body}$", re.IGNORECASE)


PATTERNS: Tuple[SubjectPattern, ...] = (
    SubjectPattern(
        "six_column",
        _row(rf"{NAME}\s+(?P<internal>{NUMBER})\s+(?P<external>{NUMBER})\s+(?P<total>{NUMBER})"
             rf"\s+(?P<max>{NUMBER})\s+{RESULT}"),
        _build_six_column,
    ),
    SubjectPattern(
        "internal_external_total",
        _row(rf"{NAME}\s+(?P<internal>{NUMBER})\s+(?P<external>{NUMBER})\s+(?P<total>{NUMBER})\s+{RESULT}"),
        _build_internal_external_total,
    ),
    SubjectPattern(
        "internal_external",
        _row(rf"{NAME}\s+(?P<internal>{NUMBER})\s+(?P<external>{NUMBER})\s+{RESULT}"),
        _build_internal_external,
    ),
    SubjectPattern(
        "total_max",
        _row(rf"{NAME}\s+(?P<total>{NUMBER})\s+(?P<max>{NUMBER})\s+{RESULT}"),
        _build_total_max,
    ),
    SubjectPattern(
        "combined_expression",
        _row(rf"{NAME}\s+(?P<internal>{NUMBER})\s*\+\s*(?P<external>{NUMBER})"
             rf"(?:\s*=\s*(?P<total>{NUMBER}))?\s+{RESULT}"),
        _build_combined_expression,
    ),
    SubjectPattern(
        "single_mark",
        _row(rf"{NAME}\s+(?P<mark>{NUMBER})\s+{RESULT}"),
        _build_single_mark,
    ),
    SubjectPattern(
        "internal_external_no_result",
        _row(rf"{NAME}\s+(?P<internal>{NUMBER})\s+(?P<external>{NUMBER})"
             rf"(?:\s+(?P<extra1>{NUMBER}))?(?:\s+(?P<extra2>{NUMBER}))?"),
        _build_internal_external_no_result,
    ),
    SubjectPattern(
        "code_prefixed",
        _row(rf"{CODE}\s+(?:[-:]\s*)?{NAME}\s+{NUMBERS}\s+{RESULT}"),
        _build_coded,
    ),
    SubjectPattern(
        "bare_code",
        _row(rf"{CODE}\s+{NUMBERS}\s+{RESULT}"),
        _build_coded,
    ),
)


# ==================== EXTRACTION ====================

def clean_subject_name(name: str) -> Optional[str]:
    """Trim punctuation and reject names that are too short or reserved."""
    name = " ".join(name.split()).strip(" -:.,/")
    key = "".join(ch for ch in name.lower() if ch.isalnum())
    if len(key) < 3 or key in RESERVED_NAMES:
        return None
    return name


def _looks_like_subject_name(line: str) -> bool:
    return (
        bool(line)
        and line[0].isalpha()
        and not _EMBEDDED_NUMBER_RE.search(line)
        and not is_header_line(line)
    )


def _lookback_name(lines: Sequence[str], index: int, lookback: int) -> Optional[str]:
    """Nearest of the preceding lines that reads like a subject name."""
    for prev in reversed(lines[max(0, index - lookback):index]):
        prev = _SERIAL_RE.sub("", prev.strip())
        if _looks_like_subject_name(prev):
            return clean_subject_name(prev)
    return None


def resolve_result(
    token: Optional[str],
    marks: int,
    max_marks: Optional[int],
    settings: SubjectSettings,
) -> Tuple[ResultStatus, ValueSource]:
    """
    Normalize a result token, or compute one from the pass fraction.

    Returns:
        (result, source) where source tells a printed result from a
        computed one
    """
    parsed = ResultStatus.parse(token) if token else None
    if parsed is not None:
        return parsed, ValueSource.DOCUMENT
    threshold = settings.pass_fraction * (max_marks or settings.default_max_marks)
    result = ResultStatus.PASS if marks >= threshold else ResultStatus.FAIL
    return result, ValueSource.COMPUTED


def match_line(line: str, settings: SubjectSettings) -> Tuple[Optional[str], Optional[SubjectMatch]]:
    """Try the layouts in order; returns (pattern name, match) for the first hit."""
    for pattern in PATTERNS:
        match = pattern.match(line, settings)
        if match is not None:
            return pattern.name, match
    return None, None


def extract_subjects(lines: Sequence[str], settings: Optional[SubjectSettings] = None) -> SubjectExtraction:
    """
    Extract subject rows from normalized lines.

    Args:
        lines: Normalized lines, in document order
        settings: Column limits and pass fraction (defaults if None)

    Returns:
        SubjectExtraction with subjects in document order, first occurrence
        of each name kept
    """
    settings = settings or SubjectSettings()
    extraction = SubjectExtraction()
    seen: set[str] = set()

    for index, raw_line in enumerate(lines):
        line = _SERIAL_RE.sub("", raw_line.strip())

        if not _DIGIT_RE.search(line) or is_header_line(line):
            extraction.skipped += 1
            continue

        pattern_name, match = match_line(line, settings)
        if match is None:
            extraction.rejected += 1
            continue

        if match.name:
            name = clean_subject_name(match.name)
        else:
            name = _lookback_name(lines, index, settings.lookback_lines) or match.code

        record = _to_record(name, match, settings) if name else None
        if record is None or record.name_key in seen:
            extraction.rejected += 1
            continue

        seen.add(record.name_key)
        extraction.subjects.append(record)
        extraction.pattern_hits[pattern_name] += 1

    return extraction


def _to_record(name: str, match: SubjectMatch, settings: SubjectSettings) -> SubjectRecord:
    result, source = resolve_result(match.result_token, match.marks, match.max_marks, settings)
    return SubjectRecord(
        subject_name=name,
        marks=match.marks,
        paper_type=classify_paper_type(name),
        result=result,
        result_source=source,
        internal_marks=match.internal_marks,
        external_marks=match.external_marks,
        max_marks=match.max_marks,
        code=match.code,
    )
