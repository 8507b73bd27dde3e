"""
File and path utility functions.

Media-type resolution and scoped temporary storage for uploaded
marksheets.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

# Media types a vision model accepts as a data URL
VISION_MEDIA_TYPES = frozenset({"image/png", "image/jpeg", "image/webp", "image/gif"})

PDF_MEDIA_TYPE = "application/pdf"
TEXT_MEDIA_TYPE = "text/plain"

_MEDIA_TYPE_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
    "application/x-pdf": PDF_MEDIA_TYPE,
}


def safe_stem(path: Path) -> str:
    """
    Get filesystem-safe stem from path.

    Replaces special characters with underscores to ensure
    the result can be used as a file name.

    Args:
        path: Path to extract stem from

    Returns:
        Sanitized filename stem
    """
    return "".join(
        ch if ch.isalnum() or ch in ("-", "_", ".") else "_"
        for ch in Path(path).stem
    )


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Returns:
        The same path (for chaining)
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def normalize_media_type(media_type: Optional[str]) -> str:
    """Lower-case, drop parameters (';charset=...') and map common aliases."""
    if not media_type:
        return ""
    base = media_type.split(";", 1)[0].strip().lower()
    return _MEDIA_TYPE_ALIASES.get(base, base)


def resolve_media_type(path: Path, declared: Optional[str] = None) -> str:
    """
    Media type of an uploaded file.

    The declared type wins when the uploader sent one; otherwise it is
    guessed from the file extension. Returns "" when neither is known.
    """
    media_type = normalize_media_type(declared)
    if media_type and media_type != "application/octet-stream":
        return media_type
    guessed, _ = mimetypes.guess_type(str(path))
    return normalize_media_type(guessed)


def is_image(media_type: str) -> bool:
    return normalize_media_type(media_type).startswith("image/")


def is_pdf(media_type: str) -> bool:
    return normalize_media_type(media_type) == PDF_MEDIA_TYPE


def is_text(media_type: str) -> bool:
    return normalize_media_type(media_type) == TEXT_MEDIA_TYPE


def unique_upload_path(temp_dir: Path, filename: str) -> Path:
    """uuid-prefixed path under temp_dir; the original suffix is kept."""
    suffix = Path(filename).suffix.lower()
    stem = safe_stem(Path(filename)) or "upload"
    return ensure_dir(temp_dir) / f"{uuid.uuid4().hex}_{stem}{suffix}"


def remove_file(path: Path, logger: Optional[logging.Logger] = None) -> bool:
    """
    Delete a file if it exists.

    Returns:
        True if the file is gone afterwards
    """
    path = Path(path)
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        if logger:
            logger.warning(f"Could not remove temporary file {path}: {e}")
        return False


@contextmanager
def temporary_upload(
    data: bytes,
    filename: str,
    temp_dir: Path,
    logger: Optional[logging.Logger] = None,
) -> Iterator[Path]:
    """
    Write uploaded bytes to a uniquely named file for the duration of the block.

    The file is removed on every exit path, including exceptions.

    Usage:
        with temporary_upload(data, "scan.jpg", config.temp_dir) as path:
            result = extractor.extract(path, remove_after=False)
    """
    path = unique_upload_path(temp_dir, filename)
    try:
        path.write_bytes(data)
        yield path
    finally:
        remove_file(path, logger)
