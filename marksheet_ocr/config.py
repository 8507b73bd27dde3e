"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file (if present)
3. Default values

Usage:
    from marksheet_ocr.config import Config
    config = Config()
    print(config.extraction.low_confidence_threshold)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env on module import (never overrides the real environment)
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: Optional[float] = None) -> Optional[float]:
    """Get float from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class AIConfig:
    """Vision model configuration (OpenAI-compatible chat completions API)."""
    provider: str = field(default_factory=lambda: os.getenv("AI_PROVIDER", "OpenAI"))
    api_key: str = field(
        default_factory=lambda: os.getenv("AI_API_KEY", "") or os.getenv("OPENAI_API_KEY", "")
    )
    model: str = field(default_factory=lambda: os.getenv("AI_MODEL", "gpt-4o"))
    base_url: str = field(default_factory=lambda: os.getenv("AI_BASE_URL", ""))
    timeout_sec: float = field(default_factory=lambda: _get_float_env("AI_TIMEOUT_SEC", 60.0) or 60.0)
    response_format: str = field(
        default_factory=lambda: os.getenv("AI_RESPONSE_FORMAT", "json_object").strip().lower()
    )
    max_tokens: int = field(default_factory=lambda: _get_int_env("AI_MAX_TOKENS", 2000))
    enabled: bool = field(default_factory=lambda: _get_bool_env("ENABLE_VISION", True))

    # Cost tracking
    input_cost_per_1m_usd: Optional[float] = field(
        default_factory=lambda: _get_float_env("AI_INPUT_COST_PER_1M_USD")
    )
    output_cost_per_1m_usd: Optional[float] = field(
        default_factory=lambda: _get_float_env("AI_OUTPUT_COST_PER_1M_USD")
    )

    @property
    def is_configured(self) -> bool:
        """Vision is usable only when enabled and a credential is present."""
        return self.enabled and bool(self.api_key.strip())

    @property
    def has_pricing(self) -> bool:
        return self.input_cost_per_1m_usd is not None or self.output_cost_per_1m_usd is not None

    def get_normalized_base_url(self) -> str:
        """
        Get normalized base_url for OpenAI SDK.

        The OpenAI SDK expects a *base* URL without the endpoint.
        For Gemini and Groq, converts full endpoints to base URL format.
        """
        u = (self.base_url or "").strip()
        if not u:
            provider = self.provider.lower()
            if provider == "gemini":
                return "https://generativelanguage.googleapis.com/v1beta/openai/"
            if provider == "groq":
                return "https://api.groq.com/openai/v1/"
            return ""  # OpenAI SDK will use default

        u = u.rstrip("/")
        if u.endswith("/chat/completions"):
            u = u[: -len("/chat/completions")]

        return u.rstrip("/") + "/"

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> Optional[float]:
        """Estimate cost in USD for given token counts."""
        if not self.has_pricing:
            return None

        cost = 0.0
        if self.input_cost_per_1m_usd:
            cost += (input_tokens / 1_000_000) * self.input_cost_per_1m_usd
        if self.output_cost_per_1m_usd:
            cost += (output_tokens / 1_000_000) * self.output_cost_per_1m_usd
        return cost


@dataclass
class OCRConfig:
    """Local recognition (Tesseract / PyMuPDF) configuration."""
    languages: str = field(default_factory=lambda: os.getenv("OCR_LANGUAGES", "eng"))
    tesseract_path: str = field(default_factory=lambda: os.getenv("TESSERACT_PATH", ""))
    psm: int = field(default_factory=lambda: _get_int_env("OCR_PSM", 6))
    timeout_sec: float = field(default_factory=lambda: _get_float_env("OCR_TIMEOUT_SEC", 120.0) or 120.0)

    # Words below this Tesseract confidence are dropped from the text
    min_word_conf: int = field(default_factory=lambda: _get_int_env("OCR_MIN_WORD_CONF", 20))
    preprocess: bool = field(default_factory=lambda: _get_bool_env("OCR_PREPROCESS", True))

    # Scanned PDFs are rendered at this DPI before OCR
    render_dpi: int = field(default_factory=lambda: _get_int_env("PDF_RENDER_DPI", 300))

    # Confidence reported for documents that carry their own text layer
    text_document_confidence: int = field(
        default_factory=lambda: _get_int_env("TEXT_DOCUMENT_CONFIDENCE", 90)
    )


@dataclass
class ExtractionConfig:
    """Parsing heuristics and post-processing thresholds."""
    low_confidence_threshold: int = field(
        default_factory=lambda: _get_int_env("LOW_CONFIDENCE_THRESHOLD", 60)
    )
    vision_confidence: int = field(default_factory=lambda: _get_int_env("VISION_CONFIDENCE", 95))

    # Fallback pass rule when a subject line carries no result token
    pass_fraction: float = field(default_factory=lambda: _get_float_env("PASS_FRACTION", 0.40) or 0.40)
    default_max_marks: int = field(default_factory=lambda: _get_int_env("DEFAULT_MAX_MARKS", 100))

    # Column plausibility bounds
    internal_max_marks: int = field(default_factory=lambda: _get_int_env("INTERNAL_MAX_MARKS", 30))
    external_max_marks: int = field(default_factory=lambda: _get_int_env("EXTERNAL_MAX_MARKS", 100))

    min_line_length: int = field(default_factory=lambda: _get_int_env("MIN_LINE_LENGTH", 3))
    lookback_lines: int = field(default_factory=lambda: _get_int_env("LOOKBACK_LINES", 3))


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug mode.
    """

    # Base directory (project root)
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)

    # Directory paths
    temp_dir: Path = field(default=None)
    logs_dir: Path = field(default=None)

    # Debug mode (enables verbose logging and raw OCR dumps)
    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _get_bool_env("LOG_TO_FILE", False))

    # Sub-configurations
    ai: AIConfig = field(default_factory=AIConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.temp_dir is None:
            self.temp_dir = self.base_dir / os.getenv("UPLOAD_TEMP_DIR", "uploads")
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / os.getenv("LOG_DIR", "logs")
        self.temp_dir = Path(self.temp_dir)
        self.logs_dir = Path(self.logs_dir)

    @property
    def dump_raw_ocr(self) -> bool:
        """Whether to log raw OCR output (enabled in debug mode)."""
        return self.debug or _get_bool_env("DUMP_RAW_OCR", False)


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
