from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from rawgrade.decode.base import DecodeError, UnsupportedEncodingError
from rawgrade.decode.types import GREEN, SensorFrame

from .calibration import calibration_matrix
from .types import LinearBuffer, Quality


logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_TARGET_WIDTH = 1024
FULL_STEP = 2

# CFA channel index -> output bucket. The second green (3) averages with green.
CHANNEL_BUCKET = np.array([0, 1, 2, 1], dtype=np.intp)


def select_step(
    sensor_width: int,
    quality: Quality,
    preview_target_width: int = DEFAULT_PREVIEW_TARGET_WIDTH,
) -> int:
    """Block size for the superpixel demosaic.

    The CFA repeats on a 2x2 period, so the step is always even.
    """

    quality = Quality(quality)
    if quality is Quality.PREVIEW:
        if preview_target_width < 1:
            raise ValueError("preview_target_width must be >= 1")
        step = max(math.ceil(sensor_width / preview_target_width), 2)
    else:
        step = FULL_STEP
    if step % 2:
        step += 1
    return step


def white_balance_gains(white_balance: Sequence[float]) -> np.ndarray:
    wb = np.asarray(list(white_balance)[:4], dtype=np.float64)
    if wb.shape != (4,):
        raise ValueError(f"white_balance must have 4 entries, got {len(wb)}")
    green = float(wb[GREEN])
    if green <= 0.0:
        return np.ones(4, dtype=np.float64)
    return wb / green


def _mosaic(frame: SensorFrame) -> np.ndarray:
    samples = np.asarray(frame.samples)
    if not np.issubdtype(samples.dtype, np.integer):
        raise UnsupportedEncodingError(f"sensor samples must be integers, got {samples.dtype}")
    if frame.width <= 0 or frame.height <= 0:
        raise DecodeError(f"empty sensor frame: {frame.width}x{frame.height}")
    if samples.ndim == 1 and samples.size == frame.width * frame.height:
        samples = samples.reshape(frame.height, frame.width)
    if samples.shape != (frame.height, frame.width):
        raise DecodeError(
            f"sample array shape {samples.shape} does not match sensor size {frame.width}x{frame.height}"
        )
    return samples


def _block_sum(values: np.ndarray, out_h: int, out_w: int, step: int) -> np.ndarray:
    return values.reshape(out_h, step, out_w, step).sum(axis=(1, 3))


def average_blocks(values: np.ndarray, buckets: np.ndarray, step: int) -> np.ndarray:
    """Mean of each R/G/B bucket inside every ``step x step`` block.

    Buckets with no samples in a block yield 0.0.
    """

    out_h = values.shape[0] // step
    out_w = values.shape[1] // step
    averaged = np.zeros((out_h, out_w, 3), dtype=np.float32)
    for bucket in range(3):
        mask = buckets == bucket
        sums = _block_sum(np.where(mask, values, 0.0), out_h, out_w, step)
        counts = _block_sum(mask.astype(np.float32), out_h, out_w, step)
        np.divide(sums, counts, out=averaged[..., bucket], where=counts > 0)
    return averaged


def demosaic(
    frame: SensorFrame,
    quality: Quality = Quality.PREVIEW,
    preview_target_width: int = DEFAULT_PREVIEW_TARGET_WIDTH,
) -> LinearBuffer:
    """Develop a sensor frame into a linear sRGB buffer by block averaging."""

    quality = Quality(quality)
    samples = _mosaic(frame)
    step = select_step(frame.width, quality, preview_target_width)
    out_w = frame.width // step
    out_h = frame.height // step
    logger.info(
        "demosaic %dx%d -> %dx%d (quality=%s step=%d)",
        frame.width,
        frame.height,
        out_w,
        out_h,
        quality.value,
        step,
    )

    crop_w = out_w * step
    crop_h = out_h * step
    cfa = frame.cfa_map(crop_w, crop_h).astype(np.intp)
    if cfa.size and (cfa.min() < 0 or cfa.max() > 3):
        raise UnsupportedEncodingError(f"CFA pattern uses channel indices outside 0..3: {np.unique(cfa)}")

    black = np.asarray(frame.black_level, dtype=np.float32)
    white = np.asarray(frame.white_level, dtype=np.float32)
    value_range = float(white[GREEN] - black[GREEN])
    if value_range <= 0.0:
        raise DecodeError(
            f"white level {white[GREEN]:.0f} must exceed black level {black[GREEN]:.0f} for green"
        )

    gains = white_balance_gains(frame.white_balance).astype(np.float32)
    x = samples[:crop_h, :crop_w].astype(np.float32)
    x = np.maximum((x - black[cfa]) / value_range, 0.0) * gains[cfa]

    camera_rgb = average_blocks(x, CHANNEL_BUCKET[cfa], step)

    cal = calibration_matrix(frame.camera_to_xyz).astype(np.float32)
    rgb = np.einsum("ij,...j->...i", cal, camera_rgb, optimize=True)
    rgb = np.clip(rgb, 0.0, 1.0)
    return LinearBuffer.from_rgb(rgb, step=step)
