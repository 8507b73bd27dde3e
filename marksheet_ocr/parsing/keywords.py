"""
Shared vocabulary for marksheet parsing.

Header/footer detection, reserved subject names and result tokens live
here so the field and subject extractors agree on them.
"""

from __future__ import annotations

import re


# Words that make up table column headers and footers. A line whose words
# all come from this set is never a subject row.
COLUMN_HEADER_WORDS = frozenset({
    "subject", "subjects", "code", "paper", "papers", "course", "title", "name",
    "internal", "external", "int", "ext", "ia", "ea", "cia", "ese", "theory",
    "practical", "total", "grand", "max", "maximum", "min", "minimum",
    "marks", "mark", "obtained", "secured", "awarded", "result", "results",
    "status", "credit", "credits", "grade", "grades", "point", "points", "gp",
    "sno", "sl", "no", "serial", "remarks", "remark", "part", "sem",
    "pass", "passed", "fail", "failed", "p", "f", "ra", "ab", "absent",
    "of", "and", "the", "out", "in", "s",
})

# Phrases that mark a header/footer line wherever they appear
HEADER_PHRASE_RE = re.compile(
    r"\b(?:semester|signature|controller|university|college|institute|"
    r"register(?:ed)?\s*(?:number|no)|reg\.?\s*no|roll\s*no|date\s+of\s+(?:birth|issue|publication)|"
    r"mark\s*sheet|marksheet|statement\s+of\s+marks|grand\s+total|total\s+marks|principal|"
    r"percentage|cgpa|sgpa|medium\s+of|month\s*(?:and|&)\s*year|examinations?|candidate|"
    r"name\s+of|student\s+name|overall\s+result|final\s+result)\b",
    re.IGNORECASE,
)

# Cleaned subject names that can never be a subject
RESERVED_NAMES = frozenset({
    "pass", "passed", "fail", "failed", "total", "grandtotal", "result", "results",
    "marks", "mark", "max", "min", "internal", "external", "subject", "subjects",
    "name", "absent", "grade", "credits", "status", "remarks", "theory",
})

# Result column tokens, anchored at the end of a row by the subject grammar
RESULT_TOKEN = r"(?P<result>PASS(?:ED)?|FAIL(?:ED)?|RA|AB(?:SENT)?|P|F)"

_WORD_RE = re.compile(r"\b[A-Za-z]+\b")
# Subject codes such as CS101 or 21CS1042
_CODE_TOKEN_RE = re.compile(r"\b(?:[A-Za-z]+\d+|\d+[A-Za-z]+)[A-Za-z0-9]*\b")


def line_words(line: str) -> list[str]:
    """Lower-cased purely alphabetic words of a line (codes like CS101 are not words)."""
    return [w.lower() for w in _WORD_RE.findall(line)]


def is_header_line(line: str) -> bool:
    """
    True for table headers, footers and document titles.

    Either every word is a column header word and no subject code is
    present (e.g. 'TOTAL', 'Subject Internal External Result', 'TOTAL 450
    600 PASS') or the line holds a header phrase such as 'semester'.
    """
    words = line_words(line)
    if not words:
        return False
    if all(w in COLUMN_HEADER_WORDS for w in words) and not _CODE_TOKEN_RE.search(line):
        return True
    return bool(HEADER_PHRASE_RE.search(line))
