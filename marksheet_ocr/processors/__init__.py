"""
Recognition backends and the extraction orchestrator.

- VisionExtractor: multimodal chat model returning structured JSON
- LocalExtractor: Tesseract / PyMuPDF text plus regex parsing
- MarksheetExtractor: vision first, local on failure, then post-processing
"""

from .base import BaseExtractor
from .vision_processor import VisionExtractor, marksheet_from_payload, MARKSHEET_PROMPT
from .ocr_processor import LocalExtractor
from .orchestrator import MarksheetExtractor, ExtractionOutcome, extract

__all__ = [
    "BaseExtractor",
    "VisionExtractor",
    "marksheet_from_payload",
    "MARKSHEET_PROMPT",
    "LocalExtractor",
    "MarksheetExtractor",
    "ExtractionOutcome",
    "extract",
]
