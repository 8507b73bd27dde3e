"""
Utility functions for the marksheet extraction pipeline.
"""

from .file_utils import (
    VISION_MEDIA_TYPES,
    safe_stem,
    ensure_dir,
    normalize_media_type,
    resolve_media_type,
    is_image,
    is_pdf,
    is_text,
    remove_file,
    temporary_upload,
)

from .image_utils import (
    load_image,
    preprocess_for_ocr,
    estimate_skew,
    deskew,
    to_pil,
)

from .timing import (
    timed_operation,
    Timer,
    run_with_timeout,
    format_duration,
)

from .ai_parser import extract_json_object, strip_code_fence

__all__ = [
    # File utilities
    "VISION_MEDIA_TYPES",
    "safe_stem",
    "ensure_dir",
    "normalize_media_type",
    "resolve_media_type",
    "is_image",
    "is_pdf",
    "is_text",
    "remove_file",
    "temporary_upload",

    # Image utilities
    "load_image",
    "preprocess_for_ocr",
    "estimate_skew",
    "deskew",
    "to_pil",

    # Timing utilities
    "timed_operation",
    "Timer",
    "run_with_timeout",
    "format_duration",

    # AI response parsing
    "extract_json_object",
    "strip_code_fence",
]
