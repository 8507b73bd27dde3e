"""
Extraction orchestrator.

Chooses between the vision backend and the local OCR backend, falls back
on failure, and post-processes whichever record was produced:
- total_marks filled from the subject marks when the document had none
- overall_result filled from the AND of the subject results
- confidence set and a low-confidence warning attached

extract() never raises; total failure is returned as ExtractionFailure.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from ..config import Config, get_config
from ..exceptions import MarksheetError
from ..logger import get_logger
from ..models import (
    ExtractedMarksheet,
    ExtractionFailure,
    ExtractionStats,
    ResultStatus,
    ValueSource,
)
from ..utils.file_utils import remove_file, resolve_media_type, temporary_upload
from ..utils.timing import Timer, run_with_timeout, timed_operation
from .base import BaseExtractor
from .ocr_processor import LocalExtractor
from .vision_processor import VisionExtractor


ExtractionOutcome = Union[ExtractedMarksheet, ExtractionFailure]

FAILURE_MESSAGE = "Could not extract data from the uploaded marksheet. Please retry or enter the details manually."


def low_confidence_warning(confidence: int) -> str:
    return (
        f"Low recognition confidence ({confidence}%). "
        "Please verify all extracted fields before saving."
    )


class MarksheetExtractor:
    """
    Two-backend marksheet extraction with fallback.

    Usage:
        extractor = MarksheetExtractor(Config())
        outcome = extractor.extract(Path("uploads/scan.jpg"), "image/jpeg")
        if isinstance(outcome, ExtractionFailure):
            ...
    """

    name = "MarksheetExtractor"

    def __init__(
        self,
        config: Optional[Config] = None,
        vision: Optional[BaseExtractor] = None,
        local: Optional[BaseExtractor] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Configuration (default: global config)
            vision: Vision backend (default: VisionExtractor built from config)
            local: Local backend (default: LocalExtractor built from config)
        """
        self.config = config or get_config()
        self.vision = vision if vision is not None else VisionExtractor(self.config)
        self.local = local if local is not None else LocalExtractor(self.config)
        self.logger = get_logger(f"marksheet_ocr.{self.name}")

    @property
    def backends(self) -> List[BaseExtractor]:
        return [self.vision, self.local]

    def extract(
        self,
        file_path: Union[str, Path],
        media_type: Optional[str] = None,
        remove_after: bool = True,
    ) -> ExtractionOutcome:
        """
        Extract a marksheet from a file.

        Args:
            file_path: Document on disk (usually a temporary upload)
            media_type: Declared media type; guessed from the extension if None
            remove_after: Delete file_path on every exit path

        Returns:
            ExtractedMarksheet, or ExtractionFailure when no backend succeeded
        """
        path = Path(file_path)
        try:
            return self._extract(path, resolve_media_type(path, media_type))
        except Exception as e:
            # Last line of defence; backends already map their own errors
            self.logger.error(f"Unexpected extraction error: {e}", exc_info=self.config.debug)
            return ExtractionFailure(FAILURE_MESSAGE, details={"error": str(e)})
        finally:
            if remove_after:
                remove_file(path, self.logger)

    def extract_upload(
        self,
        data: bytes,
        filename: str,
        media_type: Optional[str] = None,
    ) -> ExtractionOutcome:
        """
        Extract a marksheet from uploaded bytes.

        The bytes are written to a uniquely named file under the configured
        temp dir, which is removed whatever the outcome.
        """
        try:
            with temporary_upload(data, filename, self.config.temp_dir, self.logger) as path:
                return self.extract(path, media_type, remove_after=False)
        except OSError as e:
            self.logger.error(f"Could not store upload {filename}: {e}")
            return ExtractionFailure(FAILURE_MESSAGE, details={"error": str(e)})

    def _extract(self, path: Path, media_type: str) -> ExtractionOutcome:
        stats = ExtractionStats()
        timer = Timer()
        self.logger.info(f"Extracting {path.name} ({media_type or 'unknown type'})")

        marksheet: Optional[ExtractedMarksheet] = None
        for backend in self.backends:
            reason = self._skip_reason(backend, media_type)
            if reason:
                stats.fallback_reasons.append(f"{backend.name}: {reason}")
                self.logger.debug(f"Skipping {backend.name}: {reason}")
                continue

            stats.backends_tried.append(backend.name)
            timer.start(backend.name)
            try:
                with timed_operation(backend.name, self.logger):
                    marksheet = run_with_timeout(
                        backend.extract, backend.timeout_sec, backend.name, path, media_type, stats
                    )
                break
            except MarksheetError as e:
                stats.fallback_reasons.append(f"{backend.name}: {e.message}")
                self.logger.warning(f"{backend.name} failed: {e}")
                if not e.recoverable:
                    # e.g. an unreadable file: no other backend can do better
                    self.logger.debug(f"Not falling back after {type(e).__name__}")
                    break
            finally:
                timer.stop(backend.name)

        stats.duration_sec = timer.elapsed
        if self.config.debug:
            self.logger.debug(timer.summary())

        if marksheet is None:
            self.logger.error(f"All backends failed for {path.name}")
            return ExtractionFailure(
                FAILURE_MESSAGE,
                details={
                    "backends_tried": list(stats.backends_tried),
                    "reasons": list(stats.fallback_reasons),
                },
            )

        stats.method = marksheet.method
        marksheet.stats = stats
        return self._post_process(marksheet)

    @staticmethod
    def _skip_reason(backend: BaseExtractor, media_type: str) -> Optional[str]:
        if not backend.is_available():
            return "not configured"
        if not backend.supports(media_type):
            return f"unsupported media type {media_type or 'unknown'}"
        return None

    def _post_process(self, marksheet: ExtractedMarksheet) -> ExtractedMarksheet:
        """Fill derived totals and results, then set confidence and warning."""
        subjects = marksheet.subjects

        if not marksheet.total_marks and subjects:
            marksheet.total_marks = str(marksheet.subjects_marks_sum)
            marksheet.total_marks_source = ValueSource.COMPUTED

        if marksheet.overall_result is None and subjects:
            all_passed = all(s.result == ResultStatus.PASS for s in subjects)
            marksheet.overall_result = ResultStatus.PASS if all_passed else ResultStatus.FAIL
            marksheet.overall_result_source = ValueSource.COMPUTED

        if marksheet.method == VisionExtractor.method:
            marksheet.confidence = self.config.extraction.vision_confidence
        marksheet.confidence = max(0, min(100, int(marksheet.confidence)))

        if marksheet.confidence < self.config.extraction.low_confidence_threshold:
            marksheet.warning = low_confidence_warning(marksheet.confidence)
            self.logger.warning(marksheet.warning)

        self.logger.info(
            f"Extracted {len(subjects)} subjects via {marksheet.method} "
            f"(confidence {marksheet.confidence}%)"
        )
        return marksheet


def extract(
    file_path: Union[str, Path],
    media_type: Optional[str] = None,
    config: Optional[Config] = None,
    remove_after: bool = True,
) -> ExtractionOutcome:
    """Convenience wrapper: one-shot MarksheetExtractor(config).extract(...)."""
    return MarksheetExtractor(config).extract(file_path, media_type, remove_after=remove_after)
