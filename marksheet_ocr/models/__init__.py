"""
Data models for the marksheet extraction pipeline.

These models represent the core data structures and are designed
to be easily serializable to JSON and mappable to the CRUD layer's rows.
"""

from .marksheet import (
    PaperType,
    ResultStatus,
    ValueSource,
    SubjectRecord,
    ExtractedMarksheet,
    ExtractionFailure,
)
from .recognition import RawRecognitionResult
from .processing_stats import AIUsage, ExtractionStats

__all__ = [
    # Marksheet models
    "PaperType",
    "ResultStatus",
    "ValueSource",
    "SubjectRecord",
    "ExtractedMarksheet",
    "ExtractionFailure",

    # Recognition
    "RawRecognitionResult",

    # Processing stats
    "AIUsage",
    "ExtractionStats",
]
