"""
Text normalization for recognized marksheet text.

Turns raw OCR / text-layer output into a line-oriented corpus. Runs of
tabs, table bars and multiple spaces become a canonical two-space column
separator, which later passes treat as a column boundary.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple


COLUMN_SEPARATOR = "  "

_INVISIBLE_CHARS = ("\u200b", "\u200c", "\u200d", "\ufeff")
_COLUMN_RUN_RE = re.compile(r"(?:[ \t]*[|¦\t][ \t]*)+| {2,}")
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class NormalizedText:
    """Cleaned lines plus the rejoined text for whole-document matches."""
    lines: Tuple[str, ...]
    full_text: str

    @property
    def is_empty(self) -> bool:
        return not self.lines


def normalize_line(line: str) -> str:
    """Normalize a single line (column runs collapsed, trimmed)."""
    for ch in _INVISIBLE_CHARS:
        line = line.replace(ch, "")
    line = line.replace("\u00a0", " ")
    line = _COLUMN_RUN_RE.sub(COLUMN_SEPARATOR, line)
    return line.strip(" |¦\t")


def normalize_text(raw: str, min_line_length: int = 3) -> NormalizedText:
    """
    Clean raw recognized text.

    Args:
        raw: Raw text (may be empty or arbitrarily noisy)
        min_line_length: Lines shorter than this are dropped as noise

    Returns:
        NormalizedText with the surviving lines in order
    """
    if not raw:
        return NormalizedText(lines=(), full_text="")

    lines: List[str] = []
    for raw_line in _LINE_BREAK_RE.split(raw):
        line = normalize_line(raw_line)
        if len(line) < min_line_length:
            continue
        lines.append(line)

    return NormalizedText(lines=tuple(lines), full_text="\n".join(lines))
