import time
from pathlib import Path
from types import SimpleNamespace
from typing import Optional

import pytest

from marksheet_ocr.config import Config, reset_config
from marksheet_ocr.models import (
    ExtractedMarksheet,
    ExtractionStats,
    ResultStatus,
    SubjectRecord,
)
from marksheet_ocr.processors.base import BaseExtractor


SAMPLE_MARKSHEET = """
GOVERNMENT ARTS COLLEGE
STATEMENT OF MARKS
Name: PRIYA SHARMA
Register Number: 21CS1042
Subject\tInternal\tExternal\tTotal\tMax\tResult
MATHEMATICS  18  52  70  100  PASS
ENGLISH  20  55  75  100  PASS
Physics Practical  25  60  85  100  PASS
Grand Total : 230 / 300
Result: PASS
"""


@pytest.fixture(autouse=True)
def _fresh_global_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path):
    cfg = Config(temp_dir=tmp_path / "uploads", logs_dir=tmp_path / "logs")
    cfg.ai.api_key = ""
    cfg.ai.enabled = True
    cfg.ocr.preprocess = False
    cfg.ocr.tesseract_path = ""
    return cfg


@pytest.fixture
def sample_text():
    return SAMPLE_MARKSHEET


@pytest.fixture
def make_file(tmp_path):
    def _make(name: str, content: bytes = b"fake-bytes") -> Path:
        path = tmp_path / name
        path.write_bytes(content)
        return path
    return _make


def make_marksheet(method: str = "ocr", confidence: int = 80, results=("PASS", "PASS"), **kwargs):
    subjects = [
        SubjectRecord(f"Subject {chr(65 + i)}", 50 + i, result=ResultStatus.parse(r))
        for i, r in enumerate(results)
    ]
    return ExtractedMarksheet(
        student_name="PRIYA SHARMA",
        register_number="21CS1042",
        subjects=subjects,
        confidence=confidence,
        method=method,
        **kwargs,
    )


class FakeExtractor(BaseExtractor):
    """Scripted backend: returns a fixed marksheet or raises a fixed error."""

    def __init__(
        self,
        config: Config,
        name: str = "FakeBackend",
        result: Optional[ExtractedMarksheet] = None,
        error: Optional[Exception] = None,
        media_types: Optional[set] = None,
        available: bool = True,
        delay: float = 0.0,
        timeout: Optional[float] = None,
    ):
        self.name = name
        super().__init__(config)
        self.result = result
        self.error = error
        self.media_types = media_types
        self.available = available
        self.delay = delay
        self.timeout = timeout
        self.calls = []

    @property
    def timeout_sec(self):
        return self.timeout

    def is_available(self) -> bool:
        return self.available

    def supports(self, media_type: str) -> bool:
        return self.media_types is None or media_type in self.media_types

    def extract(self, path: Path, media_type: str, stats: ExtractionStats) -> ExtractedMarksheet:
        self.calls.append((Path(path), media_type, Path(path).exists()))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class FakeCompletions:
    """Stand-in for client.chat.completions with a canned answer or error."""

    def __init__(self, content=None, error=None, usage=True):
        self.content = content
        self.error = error
        self.usage = usage
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        usage = SimpleNamespace(prompt_tokens=1200, completion_tokens=300) if self.usage else None
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))
