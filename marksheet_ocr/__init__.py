"""
Marksheet OCR: turns an uploaded marksheet scan into a reviewable record.

Usage:
    from marksheet_ocr import MarksheetExtractor, ExtractionFailure

    outcome = MarksheetExtractor().extract("scan.jpg", "image/jpeg")
    if isinstance(outcome, ExtractionFailure):
        print(outcome.message)
    else:
        print(outcome.to_form_dict())
"""

from .config import Config, get_config
from .models import (
    ExtractedMarksheet,
    ExtractionFailure,
    PaperType,
    ResultStatus,
    SubjectRecord,
    ValueSource,
)
from .processors import LocalExtractor, MarksheetExtractor, VisionExtractor, extract

__version__ = "0.1.0"

__all__ = [
    "Config",
    "get_config",
    "ExtractedMarksheet",
    "ExtractionFailure",
    "PaperType",
    "ResultStatus",
    "SubjectRecord",
    "ValueSource",
    "LocalExtractor",
    "MarksheetExtractor",
    "VisionExtractor",
    "extract",
]
