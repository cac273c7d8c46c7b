from __future__ import annotations

import logging
from pathlib import Path

import numpy as np


logger = logging.getLogger(__name__)

_JPEG_SUFFIXES = {".jpg", ".jpeg"}


def quantize_rgb8(display_rgb: np.ndarray) -> np.ndarray:
    """Clamp graded RGB to [0, 1] and truncate to 8-bit codes."""

    rgb = np.asarray(display_rgb, dtype=np.float32)
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"expected HxWx3 RGB image, got {rgb.shape}")
    rgb = np.nan_to_num(rgb, nan=0.0, posinf=1.0, neginf=0.0)
    rgb = np.clip(rgb, 0.0, 1.0)
    return (rgb * 255.0).astype(np.uint8)


def write_display_image(path: Path, display_rgb: np.ndarray, jpeg_quality: int = 95) -> None:
    from PIL import Image

    codes = quantize_rgb8(display_rgb)
    path.parent.mkdir(parents=True, exist_ok=True)

    image = Image.fromarray(codes)
    if path.suffix.lower() in _JPEG_SUFFIXES:
        image.save(path, quality=int(jpeg_quality))
    else:
        image.save(path)
    logger.info("wrote %dx%d image to %s", codes.shape[1], codes.shape[0], path)
