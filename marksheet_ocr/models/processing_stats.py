"""
Processing statistics models.

Tracks diagnostics and AI usage for one extraction call.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional, List, Any


@dataclass
class AIUsage:
    """AI API usage tracking (thread-safe)."""
    provider: str = ""
    model: str = ""
    calls_count: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_call(
        self,
        input_tokens: int,
        output_tokens: int,
        cost_usd: Optional[float] = None
    ) -> None:
        """Add a single API call to the usage stats (thread-safe)."""
        with self._lock:
            self.calls_count += 1
            self.total_input_tokens += input_tokens
            self.total_output_tokens += output_tokens
            if cost_usd is not None:
                self.total_cost_usd += cost_usd

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "calls_count": self.calls_count,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_cost_usd": self.total_cost_usd,
        }


@dataclass
class ExtractionStats:
    """
    Diagnostics for one extraction call.

    Line counts are only populated on the local OCR path.
    """
    method: str = ""
    backends_tried: List[str] = field(default_factory=list)
    fallback_reasons: List[str] = field(default_factory=list)

    lines_total: int = 0
    lines_skipped: int = 0   # header / footer lines
    lines_rejected: int = 0  # carried numbers but no layout accepted them
    subjects_found: int = 0

    duration_sec: float = 0.0
    ai_usage: AIUsage = field(default_factory=AIUsage)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "method": self.method,
            "backends_tried": list(self.backends_tried),
            "fallback_reasons": list(self.fallback_reasons),
            "counts": {
                "lines_total": self.lines_total,
                "lines_skipped": self.lines_skipped,
                "lines_rejected": self.lines_rejected,
                "subjects_found": self.subjects_found,
            },
            "duration_sec": round(self.duration_sec, 4),
            "ai_usage": self.ai_usage.to_dict(),
        }
