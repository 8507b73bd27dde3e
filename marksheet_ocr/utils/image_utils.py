"""
Image processing utility functions.

Common operations for preparing scanned marksheets for OCR.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from PIL import Image


def load_image(path: Path, flags: int = cv2.IMREAD_COLOR) -> Optional[np.ndarray]:
    """
    Load image from file with proper Unicode path handling.

    Args:
        path: Path to image file
        flags: OpenCV imread flags

    Returns:
        Loaded image as numpy array, or None if failed
    """
    path = Path(path)
    if not path.exists():
        return None

    # Use cv2.imdecode for Unicode path support
    data = np.fromfile(str(path), dtype=np.uint8)
    img = cv2.imdecode(data, flags)
    if img is None:
        # GIF and some TIFF variants are not decodable by OpenCV
        try:
            with Image.open(path) as pil_img:
                rgb = np.array(pil_img.convert("RGB"))
        except OSError:
            return None
        img = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
    return img


def estimate_skew(gray: np.ndarray) -> float:
    """
    Estimate document skew angle using Hough lines.

    Args:
        gray: Grayscale image

    Returns:
        Estimated skew angle in degrees
    """
    edges = cv2.Canny(gray, 50, 150, apertureSize=3)

    lines = cv2.HoughLinesP(
        edges,
        rho=1,
        theta=np.pi / 180,
        threshold=80,
        minLineLength=max(50, gray.shape[1] // 3),
        maxLineGap=10
    )

    if lines is None:
        return 0.0

    angles = []
    for x1, y1, x2, y2 in lines[:, 0]:
        dx, dy = x2 - x1, y2 - y1
        if dx == 0:
            continue
        angle = np.degrees(np.arctan2(dy, dx))
        # Keep only near-horizontal lines (table rules on a marksheet)
        if -30 <= angle <= 30:
            angles.append(angle)

    if not angles:
        return 0.0

    # Use median for robustness
    return float(np.median(angles))


def deskew(image: np.ndarray, angle: float) -> np.ndarray:
    """
    Rotate image to correct skew.

    Args:
        image: Source image (color or grayscale)
        angle: Skew angle in degrees

    Returns:
        Deskewed image
    """
    if abs(angle) < 0.2:
        return image

    h, w = image.shape[:2]
    center = (w / 2, h / 2)

    rotation_matrix = cv2.getRotationMatrix2D(center, angle, 1.0)

    return cv2.warpAffine(
        image,
        rotation_matrix,
        (w, h),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_REPLICATE
    )


def preprocess_for_ocr(
    image: np.ndarray,
    scale: float = 1.5,
    denoise: bool = True,
    deskew_image: bool = True
) -> np.ndarray:
    """
    Preprocess a marksheet scan for OCR.

    Standard preprocessing pipeline:
    1. Convert to grayscale
    2. Deskew
    3. Upscale (small phone photos only)
    4. Denoise
    5. Normalize contrast

    Args:
        image: Source image (color or grayscale)
        scale: Scale factor for images narrower than 1500px
        denoise: Whether to apply denoising
        deskew_image: Whether to apply deskew correction

    Returns:
        Preprocessed grayscale image
    """
    if len(image.shape) == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image.copy()

    if deskew_image:
        angle = estimate_skew(gray)
        if abs(angle) > 0.2:
            gray = deskew(gray, angle)

    if scale != 1.0 and gray.shape[1] < 1500:
        gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_CUBIC)

    if denoise:
        gray = cv2.fastNlMeansDenoising(gray, None, h=8, templateWindowSize=7, searchWindowSize=21)

    gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)

    return gray


def to_pil(image: np.ndarray) -> Image.Image:
    """Convert an OpenCV (BGR or grayscale) array to a PIL image for pytesseract."""
    if len(image.shape) == 2:
        return Image.fromarray(image)
    return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
