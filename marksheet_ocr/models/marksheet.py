"""
Marksheet data models.

Represents the structured record produced from one uploaded marksheet.
The subject list maps one-to-one onto the marks rows stored by the
CRUD layer, see SubjectRecord.to_crud_row().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Any

from .processing_stats import ExtractionStats


class PaperType(str, Enum):
    CORE = "CORE"
    ALLIED = "ALLIED"
    PRACTICAL = "PRACTICAL"
    NON = "NON"

    @classmethod
    def parse(cls, value: Any) -> Optional["PaperType"]:
        """Parse an explicit label such as 'Allied' or 'practical'."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().upper()
        if key.startswith("NON"):
            return cls.NON
        try:
            return cls(key)
        except ValueError:
            return None


class ResultStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"

    @classmethod
    def parse(cls, token: Any) -> Optional["ResultStatus"]:
        """
        Normalize a result token.

        Anything starting with P is a pass, anything starting with F is a
        fail. RA (re-appear) and AB/ABSENT are fails as well.
        """
        if isinstance(token, cls):
            return token
        if isinstance(token, bool):
            return cls.PASS if token else cls.FAIL
        if not isinstance(token, str):
            return None
        t = token.strip().upper()
        if not t:
            return None
        if t.startswith("P"):
            return cls.PASS
        if t.startswith("F") or t in ("RA", "AB", "ABSENT", "RE-APPEAR", "REAPPEAR"):
            return cls.FAIL
        return None


class ValueSource(str, Enum):
    """Where a value came from: read off the document or derived by us."""
    DOCUMENT = "document"
    COMPUTED = "computed"


@dataclass
class SubjectRecord:
    """One subject row of a marksheet."""

    subject_name: str
    marks: int
    paper_type: PaperType = PaperType.CORE
    result: Optional[ResultStatus] = None
    result_source: Optional[ValueSource] = None

    # Column detail, when the layout exposed it
    internal_marks: Optional[int] = None
    external_marks: Optional[int] = None
    max_marks: Optional[int] = None
    code: Optional[str] = None

    def __post_init__(self):
        self.subject_name = " ".join(self.subject_name.split())
        if self.result is not None and self.result_source is None:
            self.result_source = ValueSource.DOCUMENT

    @property
    def name_key(self) -> str:
        """Case-insensitive key used for duplicate suppression."""
        return "".join(ch for ch in self.subject_name.lower() if ch.isalnum())

    @property
    def result_is_computed(self) -> bool:
        return self.result_source == ValueSource.COMPUTED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "subject_name": self.subject_name,
            "paper_type": self.paper_type.value,
            "marks": self.marks,
            "result": self.result.value if self.result else None,
            "result_source": self.result_source.value if self.result_source else None,
            "internal_marks": self.internal_marks,
            "external_marks": self.external_marks,
            "max_marks": self.max_marks,
            "code": self.code,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubjectRecord":
        """Create SubjectRecord from dictionary (inverse of to_dict)."""
        source = data.get("result_source")
        return cls(
            subject_name=data["subject_name"],
            marks=int(data["marks"]),
            paper_type=PaperType.parse(data.get("paper_type")) or PaperType.CORE,
            result=ResultStatus.parse(data.get("result")),
            result_source=ValueSource(source) if source else None,
            internal_marks=data.get("internal_marks"),
            external_marks=data.get("external_marks"),
            max_marks=data.get("max_marks"),
            code=data.get("code"),
        )

    def to_crud_row(self, internal_max: int = 25, default_external_max: int = 75) -> dict[str, Any]:
        """
        Map to the marks row the CRUD layer stores.

        The stored 'mark' is the external mark; internal marks are kept in
        their own column and 'overall_max_marks' is the external maximum.
        """
        internal = self.internal_marks or 0
        if self.external_marks is not None:
            external = self.external_marks
        else:
            external = max(self.marks - internal, 0)

        if self.max_marks is None:
            external_max = default_external_max
        elif self.internal_marks is not None:
            external_max = max(self.max_marks - internal_max, external)
        else:
            external_max = self.max_marks

        return {
            "name": self.subject_name,
            "mark": external,
            "paper_type": self.paper_type.value,
            "overall_max_marks": external_max,
            "internal_marks": internal,
        }


@dataclass
class ExtractedMarksheet:
    """
    Best-effort structured marksheet handed to the review form.

    Empty strings mean "not found"; the reviewer fills them in.
    """

    student_name: str = ""
    register_number: str = ""
    subjects: List[SubjectRecord] = field(default_factory=list)
    total_marks: str = ""
    overall_result: Optional[ResultStatus] = None
    confidence: int = 0
    warning: Optional[str] = None

    # Provenance
    method: str = ""  # vision, ocr
    total_marks_source: Optional[ValueSource] = None
    overall_result_source: Optional[ValueSource] = None
    stats: ExtractionStats = field(default_factory=ExtractionStats)

    @property
    def subjects_marks_sum(self) -> int:
        return sum(s.marks for s in self.subjects)

    @property
    def is_low_confidence(self) -> bool:
        return self.warning is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_name": self.student_name,
            "register_number": self.register_number,
            "subjects": [s.to_dict() for s in self.subjects],
            "total_marks": self.total_marks,
            "overall_result": self.overall_result.value if self.overall_result else None,
            "confidence": self.confidence,
            "warning": self.warning,
            "method": self.method,
            "total_marks_source": self.total_marks_source.value if self.total_marks_source else None,
            "overall_result_source": (
                self.overall_result_source.value if self.overall_result_source else None
            ),
            "stats": self.stats.to_dict(),
        }

    def to_form_dict(self) -> dict[str, Any]:
        """Payload shape accepted by the student create/update endpoints."""
        return {
            "name": self.student_name,
            "regNo": self.register_number,
            "subjects": [s.to_crud_row() for s in self.subjects],
        }


@dataclass(frozen=True)
class ExtractionFailure:
    """Whole-pipeline failure: no backend produced a usable record."""

    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "details": dict(self.details)}
