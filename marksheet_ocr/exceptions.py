"""
Custom exceptions for the marksheet extraction pipeline.

All application-specific exceptions inherit from MarksheetError. They are
raised inside recognition backends and caught by the orchestrator, which
either falls back to the next backend or reports an ExtractionFailure.
"""

from __future__ import annotations

from typing import Optional, Any


class MarksheetError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether another backend may still succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(MarksheetError):
    """
    Invalid or missing configuration.

    Examples:
        - Vision backend requested without an API key
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=True)


class UnsupportedMediaTypeError(MarksheetError):
    """A backend cannot handle the declared media type."""

    def __init__(self, media_type: str, backend: Optional[str] = None):
        details = {"media_type": media_type}
        if backend:
            details["backend"] = backend
        super().__init__(
            f"Unsupported media type: {media_type or 'unknown'}",
            details=details,
            recoverable=True,
        )


class DocumentReadError(MarksheetError):
    """
    The uploaded file could not be opened or decoded.

    Examples:
        - Corrupted PDF or image
        - File removed before processing
    """

    def __init__(self, message: str, file_path: Optional[str] = None):
        details = {"file_path": file_path} if file_path else None
        super().__init__(message, details=details, recoverable=False)


class OCRError(MarksheetError):
    """
    Local recognition failed.

    Examples:
        - Tesseract crashed or timed out
        - Language pack missing
        - No text recognized at all
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        languages: Optional[str] = None
    ):
        details = {}
        if file_path:
            details["file_path"] = file_path
        if languages:
            details["languages"] = languages
        super().__init__(message, details=details, recoverable=False)


class TesseractNotFoundError(OCRError):
    """Tesseract OCR is not installed or not accessible."""

    def __init__(self, tesseract_path: Optional[str] = None):
        message = (
            "Tesseract OCR not found. Please install Tesseract:\n"
            "  - Windows: https://github.com/UB-Mannheim/tesseract/wiki\n"
            "  - macOS: brew install tesseract\n"
            "  - Ubuntu: sudo apt install tesseract-ocr"
        )
        super().__init__(message)
        if tesseract_path:
            self.details["tesseract_path_tried"] = tesseract_path


class VisionExtractionError(MarksheetError):
    """
    Vision model call failed or returned an unusable response.

    Examples:
        - Network / API error
        - Non-JSON or wrongly shaped response
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        response_text: Optional[str] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if response_text:
            # Truncate long responses
            details["response_preview"] = response_text[:500]
        super().__init__(message, details=details, recoverable=True)


class ExtractionTimeoutError(MarksheetError):
    """A backend did not answer within its bounded wait."""

    def __init__(self, backend: str, timeout_sec: float):
        super().__init__(
            f"{backend} timed out after {timeout_sec:.1f}s",
            details={"backend": backend, "timeout_sec": timeout_sec},
            recoverable=True,
        )
