"""
Base extractor class.

Provides common functionality for the recognition backends including
logging, configuration access and the capability checks the orchestrator
uses to pick a backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Any

from ..config import Config, get_config
from ..logger import get_logger
from ..models import ExtractedMarksheet, ExtractionStats


class BaseExtractor(ABC):
    """
    Abstract base class for marksheet recognition backends.

    A backend turns one document into an ExtractedMarksheet or raises a
    MarksheetError subclass. It never falls back on its own; that is the
    orchestrator's job.
    """

    # Backend name for logging and stats (override in subclass)
    name: str = "BaseExtractor"

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize extractor.

        Args:
            config: Configuration (default: global config)
        """
        self.config = config or get_config()
        self.logger = get_logger(f"marksheet_ocr.{self.name}")

    @property
    def debug_mode(self) -> bool:
        """Check if debug mode is enabled."""
        return self.config.debug

    @property
    def timeout_sec(self) -> Optional[float]:
        """Bounded wait the orchestrator applies to extract(); None means unbounded."""
        return None

    def log_debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message (only in debug mode)."""
        if self.debug_mode:
            extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
            self.logger.debug(f"{message} {extra}".strip())

    def log_info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.info(f"{message} {extra}".strip())

    def log_warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.warning(f"{message} {extra}".strip())

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        """Log error message."""
        if error:
            self.logger.error(f"{message}: {error}", exc_info=self.debug_mode)
        else:
            self.logger.error(message)

    def is_available(self) -> bool:
        """
        Whether the backend can run at all (credentials, binaries).

        Override in subclass to check prerequisites.
        """
        return True

    @abstractmethod
    def supports(self, media_type: str) -> bool:
        """Whether this backend can read documents of the given media type."""

    @abstractmethod
    def extract(self, path: Path, media_type: str, stats: ExtractionStats) -> ExtractedMarksheet:
        """
        Recognize one document.

        Args:
            path: Document on disk
            media_type: Resolved media type
            stats: Diagnostics of the current call, updated in place

        Returns:
            Extracted marksheet (before orchestrator post-processing)

        Raises:
            MarksheetError: On any backend failure
        """
