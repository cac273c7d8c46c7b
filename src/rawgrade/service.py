from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from rawgrade.color import GradeParams, GradePipeline, LinearBuffer, Quality, demosaic
from rawgrade.color.histogram import Histogram, compute_histogram
from rawgrade.config import AppConfig
from rawgrade.decode import DecoderRegistry
from rawgrade.decode.base import Decoder
from rawgrade.session import SessionCache
from rawgrade.write import write_display_image, write_linear_debug_tiff


logger = logging.getLogger(__name__)


def _warn_clipping(buffer: LinearBuffer, source_path: Path, threshold: float = 0.01) -> None:
    clipped = float(np.mean(buffer.rgb >= 1.0)) if buffer.rgb.size else 0.0
    if clipped > threshold:
        logger.warning("high clipping ratio %.2f%% after calibration in %s", clipped * 100.0, source_path)


def load_preview(session: SessionCache, input_path: Path) -> LinearBuffer:
    """Decode ``input_path`` at preview density and cache it in the session."""

    buffer = session.load(input_path, quality=Quality.PREVIEW)
    _warn_clipping(buffer, input_path)
    return buffer


def render_preview(session: SessionCache, params: GradeParams) -> np.ndarray:
    return session.grade_preview(params)


def preview_histogram(session: SessionCache, params: GradeParams, config: AppConfig | None = None) -> Histogram:
    cfg = config or AppConfig()
    return compute_histogram(
        session.require_buffer(),
        params,
        buckets=cfg.histogram.buckets,
        sample_stride=cfg.histogram.sample_stride,
    )


def write_preview(session: SessionCache, params: GradeParams, save_path: Path, config: AppConfig | None = None) -> Path:
    cfg = config or AppConfig()
    write_display_image(save_path, render_preview(session, params), jpeg_quality=cfg.output.jpeg_quality)
    return save_path


def export_image(
    input_path: Path,
    params: GradeParams,
    save_path: Path,
    config: AppConfig | None = None,
    decoder: Decoder | None = None,
) -> Path:
    """Develop ``input_path`` at full density, grade it and write ``save_path``."""

    cfg = config or AppConfig()
    active_decoder = decoder or DecoderRegistry()

    frame = active_decoder.decode(input_path)
    buffer = demosaic(frame, quality=Quality.FULL, preview_target_width=cfg.demosaic.preview_target_width)
    _warn_clipping(buffer, input_path)

    pipeline = GradePipeline(params)
    logger.info("exporting %s -> %s (grade=%s)", input_path, save_path, pipeline.version_hash())
    write_display_image(save_path, pipeline.transform(buffer), jpeg_quality=cfg.output.jpeg_quality)

    if cfg.output.write_debug_tiff:
        debug_path = save_path.with_name(f"{save_path.stem}_linear.tiff")
        write_linear_debug_tiff(debug_path, buffer)
        logger.info("wrote linear debug TIFF %s", debug_path)

    return save_path
