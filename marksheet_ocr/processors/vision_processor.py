"""
Vision Extractor processor.

Sends the marksheet image to a multimodal chat model (OpenAI-compatible
API) with a fixed instruction prompt and maps its JSON answer onto an
ExtractedMarksheet. The regex parsers are bypassed entirely on this path.
"""

from __future__ import annotations

import base64
import math
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from openai import APITimeoutError, OpenAI, OpenAIError

from .base import BaseExtractor
from ..config import Config
from ..exceptions import (
    ConfigurationError,
    DocumentReadError,
    ExtractionTimeoutError,
    UnsupportedMediaTypeError,
    VisionExtractionError,
)
from ..models import (
    ExtractedMarksheet,
    ExtractionStats,
    ResultStatus,
    SubjectRecord,
    ValueSource,
)
from ..parsing.fields import clean_total
from ..parsing.paper_type import classify_paper_type
from ..parsing.subjects import SubjectSettings, clean_subject_name, resolve_result
from ..utils.ai_parser import extract_json_object
from ..utils.file_utils import VISION_MEDIA_TYPES, normalize_media_type


MARKSHEET_PROMPT = """You are reading a scanned university marksheet.
Return ONLY a JSON object with exactly this shape:

{
  "student_name": "string",
  "register_number": "string",
  "subjects": [
    {
      "subject": "string",
      "paper_type": "CORE | ALLIED | PRACTICAL | NON",
      "internal_marks": number or null,
      "external_marks": number or null,
      "marks": number,
      "max_marks": number or null,
      "result": "PASS | FAIL"
    }
  ],
  "total_marks": "string",
  "result": "PASS | FAIL"
}

Rules:
- "marks" is the subject total (internal + external when both are printed).
- Use null or "" for anything that is not printed on the document.
- Copy names and register numbers exactly as printed. Do not guess.
- Do not include table headers, totals or signatures as subjects.
"""

# Accepted spellings for each field, in preference order
STUDENT_NAME_KEYS = ("student_name", "studentName", "name", "student", "candidate_name")
REGISTER_NUMBER_KEYS = (
    "register_number", "registerNumber", "reg_no", "regNo", "register_no",
    "registration_number", "roll_number", "roll_no",
)
SUBJECTS_KEYS = ("subjects", "subject_marks", "marks_table", "papers")
TOTAL_MARKS_KEYS = ("total_marks", "totalMarks", "grand_total", "total")
OVERALL_RESULT_KEYS = ("result", "overall_result", "overallResult", "final_result", "status")

SUBJECT_NAME_KEYS = ("subject", "subject_name", "subjectName", "name", "paper", "title")
SUBJECT_MARKS_KEYS = ("marks", "mark", "total", "total_marks", "score", "obtained")
SUBJECT_RESULT_KEYS = ("result", "status", "pass_fail")
SUBJECT_TYPE_KEYS = ("paper_type", "paperType", "type", "category")
INTERNAL_KEYS = ("internal_marks", "internal", "internalMarks", "cia")
EXTERNAL_KEYS = ("external_marks", "external", "externalMarks", "ese")
MAX_KEYS = ("max_marks", "maximum_marks", "max", "maxMarks", "out_of")
CODE_KEYS = ("code", "subject_code", "subjectCode", "paper_code")

_EXPRESSION_RE = re.compile(r"^\s*(\d{1,3})\s*\+\s*(\d{1,3})(?:\s*=\s*\d{1,3})?\s*$")
_LEADING_NUMBER_RE = re.compile(r"\d{1,4}")


def _first(data: dict[str, Any], keys: Iterable[str]) -> Any:
    """Value of the first key present with a non-empty value."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def coerce_marks(value: Any) -> Optional[int]:
    """
    Turn a model-supplied mark into an int.

    Examples:
        >>> coerce_marks(70), coerce_marks("70"), coerce_marks("18+52"), coerce_marks("70/100")
        (70, 70, 70, 70)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None
    if not isinstance(value, str):
        return None

    match = _EXPRESSION_RE.match(value)
    if match:
        return int(match.group(1)) + int(match.group(2))
    match = _LEADING_NUMBER_RE.search(value)
    return int(match.group(0)) if match else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def _subject_from_payload(item: Any, settings: SubjectSettings) -> Optional[SubjectRecord]:
    if not isinstance(item, dict):
        return None

    name = clean_subject_name(_text(_first(item, SUBJECT_NAME_KEYS)))
    if not name:
        return None

    internal = coerce_marks(_first(item, INTERNAL_KEYS))
    external = coerce_marks(_first(item, EXTERNAL_KEYS))
    marks = coerce_marks(_first(item, SUBJECT_MARKS_KEYS))
    if marks is None and internal is not None and external is not None:
        marks = internal + external
    if marks is None:
        return None

    max_marks = coerce_marks(_first(item, MAX_KEYS))
    result, source = resolve_result(_text(_first(item, SUBJECT_RESULT_KEYS)), marks, max_marks, settings)
    code = _text(_first(item, CODE_KEYS)) or None

    return SubjectRecord(
        subject_name=name,
        marks=marks,
        paper_type=classify_paper_type(name, explicit=_first(item, SUBJECT_TYPE_KEYS)),
        result=result,
        result_source=source,
        internal_marks=internal,
        external_marks=external,
        max_marks=max_marks,
        code=code,
    )


def marksheet_from_payload(payload: Any, settings: Optional[SubjectSettings] = None) -> ExtractedMarksheet:
    """
    Map a vision model's JSON answer onto an ExtractedMarksheet.

    Field names vary between models and prompts, so several aliases are
    accepted for each field. Subjects that have no name or no usable mark
    are dropped, and so are duplicate names.

    Raises:
        VisionExtractionError: If the payload carries none of the expected fields,
            or lists subjects none of which has a name and a usable mark
    """
    settings = settings or SubjectSettings()
    if not isinstance(payload, dict):
        raise VisionExtractionError("Vision response is not a JSON object")

    raw_subjects = _first(payload, SUBJECTS_KEYS)
    student_name = _text(_first(payload, STUDENT_NAME_KEYS))
    register_number = _text(_first(payload, REGISTER_NUMBER_KEYS)).upper()
    if raw_subjects is None and not student_name and not register_number:
        raise VisionExtractionError(
            "Vision response has no marksheet fields",
            response_text=str(sorted(payload.keys())),
        )

    subjects: List[SubjectRecord] = []
    seen: set[str] = set()
    for item in raw_subjects if isinstance(raw_subjects, list) else []:
        record = _subject_from_payload(item, settings)
        if record is None or record.name_key in seen:
            continue
        seen.add(record.name_key)
        subjects.append(record)
    if raw_subjects and isinstance(raw_subjects, list) and not subjects:
        raise VisionExtractionError(
            "Vision response has no usable subject rows",
            response_text=str(raw_subjects),
        )

    total_value = coerce_marks(_first(payload, TOTAL_MARKS_KEYS))
    total_marks = clean_total(str(total_value)) if total_value is not None else None

    overall_value = _first(payload, OVERALL_RESULT_KEYS)
    overall_result = ResultStatus.parse(overall_value) if isinstance(overall_value, (str, bool)) else None

    return ExtractedMarksheet(
        student_name=student_name,
        register_number=register_number,
        subjects=subjects,
        total_marks=total_marks or "",
        overall_result=overall_result,
        total_marks_source=ValueSource.DOCUMENT if total_marks else None,
        overall_result_source=ValueSource.DOCUMENT if overall_result else None,
    )


class VisionExtractor(BaseExtractor):
    """
    Extract a marksheet with a multimodal chat model.

    Single attempt per document: the OpenAI client is built with
    max_retries=0 and its own timeout, and the orchestrator adds a bounded
    wait around the whole call.
    """

    name = "VisionExtractor"
    method = "vision"

    def __init__(self, config: Optional[Config] = None, client: Optional[Any] = None):
        """
        Initialize extractor.

        Args:
            config: Configuration (default: global config)
            client: Pre-built OpenAI-compatible client (default: built from config.ai)
        """
        super().__init__(config)
        self.client = client
        self.settings = SubjectSettings.from_config(self.config.extraction)

    @property
    def timeout_sec(self) -> Optional[float]:
        return self.config.ai.timeout_sec

    def is_available(self) -> bool:
        return self.client is not None or self.config.ai.is_configured

    def supports(self, media_type: str) -> bool:
        return normalize_media_type(media_type) in VISION_MEDIA_TYPES

    def _get_client(self) -> Any:
        if self.client is None:
            ai_config = self.config.ai
            self.client = OpenAI(
                api_key=ai_config.api_key,
                base_url=ai_config.get_normalized_base_url() or None,
                timeout=ai_config.timeout_sec,
                max_retries=0,
            )
        return self.client

    def extract(self, path: Path, media_type: str, stats: ExtractionStats) -> ExtractedMarksheet:
        if not self.is_available():
            raise ConfigurationError("Vision backend is not configured", config_key="AI_API_KEY")
        if not self.supports(media_type):
            raise UnsupportedMediaTypeError(media_type, backend=self.name)

        content, input_tokens, output_tokens = self._call_model(path, media_type)

        ai_config = self.config.ai
        stats.ai_usage.provider = ai_config.provider
        stats.ai_usage.model = ai_config.model
        stats.ai_usage.add_call(input_tokens, output_tokens, ai_config.estimate_cost(input_tokens, output_tokens))

        try:
            payload = extract_json_object(content)
        except ValueError as e:
            raise VisionExtractionError(str(e), model=ai_config.model, response_text=content) from e

        try:
            marksheet = marksheet_from_payload(payload, self.settings)
        except (ValueError, TypeError, OverflowError) as e:
            raise VisionExtractionError(
                f"Malformed vision payload: {e}", model=ai_config.model, response_text=content
            ) from e
        marksheet.method = self.method
        self.log_info(
            "Vision extraction complete",
            subjects=len(marksheet.subjects),
            tokens=input_tokens + output_tokens,
        )
        return marksheet

    def _call_model(self, path: Path, media_type: str) -> Tuple[str, int, int]:
        """
        Send the prompt and the image; returns (content, input_tokens, output_tokens).
        """
        ai_config = self.config.ai
        try:
            data_url = encode_data_url(path, media_type)
        except OSError as e:
            raise DocumentReadError(f"Cannot read image: {e}", file_path=str(path)) from e

        payload: dict[str, Any] = {
            "model": ai_config.model,
            "max_tokens": ai_config.max_tokens,
            "messages": [
                {"role": "system", "content": MARKSHEET_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "Extract the marksheet."},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                },
            ],
        }
        if ai_config.response_format == "json_object":
            payload["response_format"] = {"type": "json_object"}

        self.log_debug("Calling vision model", model=ai_config.model, provider=ai_config.provider)
        try:
            resp = self._get_client().chat.completions.create(**payload)
        except APITimeoutError as e:
            raise ExtractionTimeoutError(self.name, ai_config.timeout_sec) from e
        except OpenAIError as e:
            self.log_error("Vision API call failed", e)
            raise VisionExtractionError(f"Vision API call failed: {e}", model=ai_config.model) from e

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise VisionExtractionError(f"Unexpected response shape: {e}", model=ai_config.model) from e
        if not content:
            raise VisionExtractionError("Empty response from vision model", model=ai_config.model)

        input_tokens = output_tokens = 0
        usage = getattr(resp, "usage", None)
        if usage is not None:
            input_tokens = int(getattr(usage, "prompt_tokens", 0) or 0)
            output_tokens = int(getattr(usage, "completion_tokens", 0) or 0)
        else:
            self.log_warning("No usage data in AI response")

        return str(content), input_tokens, output_tokens


def encode_data_url(path: Path, media_type: str) -> str:
    """Encode an image file as a base64 data URL."""
    b64 = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    return f"data:{normalize_media_type(media_type)};base64,{b64}"
