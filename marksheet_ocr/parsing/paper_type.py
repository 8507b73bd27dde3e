"""
Paper-type classification from subject names.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

from ..models import PaperType


# Regex fragments, checked in order; the first group with a hit wins
PAPER_TYPE_KEYWORDS: Tuple[Tuple[PaperType, Tuple[str, ...]], ...] = (
    (PaperType.PRACTICAL, ("practical", r"lab\b", "laborator", "project", "viva", "workshop")),
    (PaperType.NON, ("non-major", "non major", r"nme\b")),
    (PaperType.ALLIED, ("allied", "elective", "open course", "generic")),
)

_KEYWORD_RES = tuple(
    (paper_type, tuple(re.compile(rf"\b{k}", re.IGNORECASE) for k in keywords))
    for paper_type, keywords in PAPER_TYPE_KEYWORDS
)


def classify_paper_type(subject_name: str, explicit: Any = None) -> PaperType:
    """
    Assign a paper type to a subject.

    An explicit label (vision path) is authoritative whenever it parses;
    otherwise keywords in the name decide, defaulting to CORE.

    Examples:
        >>> classify_paper_type("Physics Lab")
        <PaperType.PRACTICAL: 'PRACTICAL'>
        >>> classify_paper_type("Allied Mathematics - I")
        <PaperType.ALLIED: 'ALLIED'>
    """
    label: Optional[PaperType] = PaperType.parse(explicit) if explicit is not None else None
    if label is not None:
        return label

    name = subject_name or ""
    for paper_type, patterns in _KEYWORD_RES:
        if any(p.search(name) for p in patterns):
            return paper_type
    return PaperType.CORE
