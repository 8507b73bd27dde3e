"""
Raw recognition output from a local backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RawRecognitionResult:
    """
    Text recognized from one document.

    confidence is Tesseract's mean word confidence (0-100) for images and
    scanned pages, or None for documents that carried their own text layer;
    the caller assigns a nominal value in that case.
    """
    text: str
    confidence: Optional[int] = None
    engine: str = ""
    page_count: int = 1

    @property
    def is_empty(self) -> bool:
        return not self.text or not self.text.strip()
