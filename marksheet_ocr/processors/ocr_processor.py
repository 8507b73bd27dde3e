"""
Local OCR processor.

Recognizes marksheet text without any network service:
- images and scanned PDF pages go through Tesseract (word-level
  image_to_data, regrouped into lines with column gaps preserved)
- PDFs with a text layer are read directly with PyMuPDF
- plain text uploads are read as-is

The recognized text is then parsed with the regex field extractors and
the subject row grammar.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import cv2
import fitz  # PyMuPDF
import numpy as np
import pytesseract
from pytesseract import Output

from .base import BaseExtractor
from ..config import Config
from ..exceptions import (
    DocumentReadError,
    ExtractionTimeoutError,
    OCRError,
    TesseractNotFoundError,
    UnsupportedMediaTypeError,
)
from ..models import (
    ExtractedMarksheet,
    ExtractionStats,
    RawRecognitionResult,
    ValueSource,
)
from ..parsing import parse_marksheet_text
from ..parsing.normalizer import COLUMN_SEPARATOR
from ..parsing.subjects import SubjectSettings
from ..utils.file_utils import is_image, is_pdf, is_text
from ..utils.image_utils import load_image, preprocess_for_ocr, to_pil


# A PDF whose text layer has fewer characters than this is treated as scanned
MIN_TEXT_LAYER_CHARS = 20

# Horizontal gap (in word heights) that separates two table columns
COLUMN_GAP_RATIO = 1.2


@dataclass
class _PageText:
    """OCR output of one image: lines plus per-word confidences."""
    lines: List[str] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)


class LocalExtractor(BaseExtractor):
    """
    Extract a marksheet with Tesseract / PyMuPDF plus regex parsing.

    Confidence is the mean Tesseract word confidence for images and scanned
    pages, or the configured nominal value for documents with a text layer.
    """

    name = "LocalExtractor"
    method = "ocr"

    def __init__(self, config: Optional[Config] = None):
        super().__init__(config)
        self.settings = SubjectSettings.from_config(self.config.extraction)
        self._tesseract_configured = False

    @property
    def timeout_sec(self) -> Optional[float]:
        return self.config.ocr.timeout_sec

    def supports(self, media_type: str) -> bool:
        return is_image(media_type) or is_pdf(media_type) or is_text(media_type)

    # ==================== RECOGNITION ====================

    def recognize(self, path: Path, media_type: str) -> RawRecognitionResult:
        """
        Recognize raw text from a document.

        Raises:
            DocumentReadError: File missing or undecodable
            UnsupportedMediaTypeError: Not an image, PDF or text file
            OCRError: Tesseract failed
        """
        path = Path(path)
        if not path.exists():
            raise DocumentReadError("File not found", file_path=str(path))

        if is_text(media_type):
            text = path.read_text(encoding="utf-8", errors="replace")
            return RawRecognitionResult(text=text, confidence=None, engine="text")
        if is_pdf(media_type):
            return self._recognize_pdf(path)
        if is_image(media_type):
            img = load_image(path)
            if img is None:
                raise DocumentReadError("Cannot decode image", file_path=str(path))
            page = self._ocr_image(img, path)
            return RawRecognitionResult(
                text="\n".join(page.lines),
                confidence=_mean_confidence(page.confidences),
                engine="tesseract",
            )

        raise UnsupportedMediaTypeError(media_type, backend=self.name)

    def _recognize_pdf(self, path: Path) -> RawRecognitionResult:
        try:
            doc = fitz.open(path)
        except Exception as e:
            raise DocumentReadError(f"Failed to open PDF: {e}", file_path=str(path)) from e

        try:
            page_count = doc.page_count
            text_layer = "\n".join(
                doc.load_page(i).get_text("text") or "" for i in range(page_count)
            )
            if len(text_layer.strip()) >= MIN_TEXT_LAYER_CHARS:
                self.log_debug("Using PDF text layer", pages=page_count, chars=len(text_layer))
                return RawRecognitionResult(
                    text=text_layer, confidence=None, engine="pymupdf", page_count=page_count
                )

            self.log_debug("PDF has no text layer, rendering pages", pages=page_count)
            zoom = self.config.ocr.render_dpi / 72.0
            matrix = fitz.Matrix(zoom, zoom)

            lines: List[str] = []
            confidences: List[float] = []
            for page_index in range(page_count):
                pix = doc.load_page(page_index).get_pixmap(matrix=matrix, alpha=False)
                page = self._ocr_image(_pixmap_to_bgr(pix), path)
                lines.extend(page.lines)
                confidences.extend(page.confidences)
        finally:
            doc.close()

        return RawRecognitionResult(
            text="\n".join(lines),
            confidence=_mean_confidence(confidences),
            engine="tesseract",
            page_count=page_count,
        )

    def _configure_tesseract(self) -> None:
        """Point pytesseract at a custom binary when one is configured."""
        if self._tesseract_configured:
            return
        if self.config.ocr.tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = self.config.ocr.tesseract_path
            self.log_debug(f"Using Tesseract from: {self.config.ocr.tesseract_path}")
        self._tesseract_configured = True

    def _ocr_image(self, img_bgr: np.ndarray, path: Path) -> _PageText:
        """
        Run Tesseract on one image and regroup its words into lines.

        Words are grouped by (block, paragraph, line). A horizontal gap wider
        than COLUMN_GAP_RATIO word heights becomes a column separator so the
        subject grammar can still see the table columns.
        """
        ocr_config = self.config.ocr
        self._configure_tesseract()

        img = preprocess_for_ocr(img_bgr) if ocr_config.preprocess else img_bgr

        try:
            data = pytesseract.image_to_data(
                to_pil(img),
                lang=ocr_config.languages,
                config=f"--oem 1 --psm {ocr_config.psm}",
                output_type=Output.DICT,
                timeout=ocr_config.timeout_sec,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise TesseractNotFoundError(ocr_config.tesseract_path or None) from e
        except pytesseract.TesseractError as e:
            raise OCRError(f"Tesseract failed: {e}", str(path), ocr_config.languages) from e
        except RuntimeError as e:
            # pytesseract signals its own timeout with a bare RuntimeError
            if "timeout" in str(e).lower():
                raise ExtractionTimeoutError(self.name, ocr_config.timeout_sec) from e
            raise OCRError(f"Tesseract failed: {e}", str(path), ocr_config.languages) from e

        return group_words(data, ocr_config.min_word_conf)

    # ==================== EXTRACTION ====================

    def extract(self, path: Path, media_type: str, stats: ExtractionStats) -> ExtractedMarksheet:
        if not self.supports(media_type):
            raise UnsupportedMediaTypeError(media_type, backend=self.name)

        raw = self.recognize(path, media_type)
        if raw.is_empty:
            raise OCRError("No text recognized", str(path), self.config.ocr.languages)

        if self.config.dump_raw_ocr:
            self.log_debug(f"Raw {raw.engine} text:\n{raw.text}")

        normalized, fields, subjects = parse_marksheet_text(
            raw.text, self.settings, min_line_length=self.config.extraction.min_line_length
        )

        stats.lines_total = len(normalized.lines)
        stats.lines_skipped = subjects.skipped
        stats.lines_rejected = subjects.rejected
        stats.subjects_found = len(subjects.subjects)

        confidence = raw.confidence
        if confidence is None:
            confidence = self.config.ocr.text_document_confidence

        self.log_info(
            "Local extraction complete",
            engine=raw.engine,
            lines=stats.lines_total,
            subjects=stats.subjects_found,
            confidence=confidence,
        )
        if subjects.pattern_hits:
            self.log_debug("Row layouts matched", **dict(subjects.pattern_hits))

        return ExtractedMarksheet(
            student_name=fields.student_name or "",
            register_number=fields.register_number or "",
            subjects=subjects.subjects,
            total_marks=fields.total_marks or "",
            overall_result=fields.overall_result,
            confidence=confidence,
            method=self.method,
            total_marks_source=ValueSource.DOCUMENT if fields.total_marks else None,
            overall_result_source=ValueSource.DOCUMENT if fields.overall_result else None,
        )


def group_words(data: Dict[str, list], min_word_conf: int) -> _PageText:
    """
    Rebuild text lines from pytesseract's image_to_data dictionary.

    Args:
        data: image_to_data(..., output_type=Output.DICT) result
        min_word_conf: Words below this confidence are dropped from the text

    Returns:
        Lines in reading order plus the confidences of all recognized words
    """
    page = _PageText()
    lines: Dict[Tuple[int, int, int], List[Tuple[int, int, int, str]]] = {}

    for i, raw_text in enumerate(data.get("text", [])):
        txt = (raw_text or "").strip()
        if not txt:
            continue

        conf = float(data["conf"][i])
        # Score every recognized word, including the ones too weak to keep
        if conf >= 0:
            page.confidences.append(conf)
        if conf < min_word_conf:
            continue

        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(
            (int(data["left"][i]), int(data["width"][i]), int(data["height"][i]), txt)
        )

    for words in lines.values():
        words.sort(key=lambda w: w[0])
        parts = [words[0][3]]
        for (prev_left, prev_width, _, _), (left, _, height, txt) in zip(words, words[1:]):
            gap = left - (prev_left + prev_width)
            parts.append(COLUMN_SEPARATOR if gap > COLUMN_GAP_RATIO * max(height, 1) else " ")
            parts.append(txt)
        page.lines.append("".join(parts))

    return page


def _mean_confidence(confidences: List[float]) -> Optional[int]:
    if not confidences:
        return None
    return int(round(sum(confidences) / len(confidences)))


def _pixmap_to_bgr(pix: "fitz.Pixmap") -> np.ndarray:
    """Convert a rendered PyMuPDF page (RGB, no alpha) into an OpenCV image."""
    arr = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
    if pix.n == 1:
        return arr.copy()
    return cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)
