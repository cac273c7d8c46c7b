from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np

from .base import DecodeError, MissingDependencyError, UnsupportedEncodingError
from .types import SensorFrame


try:
    import rawpy  # type: ignore
except Exception:  # pragma: no cover - dependency is optional
    rawpy = None


logger = logging.getLogger(__name__)

_SUPPORTED_COLOR_DESC = {"RGBG", "RGB"}


def _normalize_wb(values: Any) -> tuple[float, float, float, float]:
    raw = [float(v) for v in list(values or [1.0, 1.0, 1.0, 1.0])]
    if len(raw) >= 4:
        # LibRaw reports 0 for the second green on most Bayer bodies.
        g2 = raw[3] if raw[3] > 0.0 else raw[1]
        return (raw[0], raw[1], raw[2], g2)
    if len(raw) == 3:
        return (raw[0], raw[1], raw[2], raw[1])
    return (1.0, 1.0, 1.0, 1.0)


def _per_channel_levels(values: Any, fallback: int) -> tuple[int, int, int, int]:
    if values is None:
        return (fallback, fallback, fallback, fallback)
    levels = [int(v) for v in list(values)[:4]]
    if not levels or all(v == 0 for v in levels):
        return (fallback, fallback, fallback, fallback)
    if len(levels) == 3:
        levels.append(levels[1])
    while len(levels) < 4:
        levels.append(levels[-1])
    return (levels[0], levels[1], levels[2], levels[3])


def _color_desc(raw: Any) -> str:
    desc = getattr(raw, "color_desc", b"RGBG")
    if isinstance(desc, bytes):
        desc = desc.decode("ascii", errors="replace")
    return str(desc)


def _camera_to_xyz(rgb_xyz_matrix: Any) -> np.ndarray | None:
    """Invert LibRaw's XYZ -> camera matrix into camera -> XYZ.

    An absent or all-zero matrix is passed through unchanged so the
    identity fallback applies downstream.
    """

    if rgb_xyz_matrix is None:
        return None
    xyz_to_cam = np.asarray(rgb_xyz_matrix, dtype=np.float64)[:3, :3]
    if xyz_to_cam.shape != (3, 3) or not np.any(xyz_to_cam):
        return xyz_to_cam.copy()
    try:
        return np.linalg.inv(xyz_to_cam)
    except np.linalg.LinAlgError:
        logger.warning("singular camera colour matrix, ignoring calibration")
        return None


class LibRawDecoder:
    """Mosaic decoder using rawpy (LibRaw backend).

    Unlike a rendered decode, this returns the undemosaiced sensor data and
    leaves black/white levels, white balance and colour calibration to the
    demosaic engine.
    """

    def __init__(self) -> None:
        if rawpy is None:
            raise MissingDependencyError("rawpy is required for RAW decode: pip install '.[raw]'")

    def decode(self, path: Path) -> SensorFrame:
        try:
            with rawpy.imread(str(path)) as raw:
                desc = _color_desc(raw)
                if desc not in _SUPPORTED_COLOR_DESC:
                    raise UnsupportedEncodingError(f"unsupported colour filter description {desc!r} in {path}")

                mosaic = np.asarray(raw.raw_image_visible)
                if not np.issubdtype(mosaic.dtype, np.integer):
                    raise UnsupportedEncodingError(
                        f"sensor samples in {path} are {mosaic.dtype}, only integer mosaics are supported"
                    )
                if mosaic.ndim != 2:
                    raise UnsupportedEncodingError(f"expected a single-plane mosaic for {path}, got {mosaic.shape}")

                white_level = int(getattr(raw, "white_level", 0) or 0)
                black = _per_channel_levels(getattr(raw, "black_level_per_channel", None), 0)
                white = _per_channel_levels(getattr(raw, "camera_white_level_per_channel", None), white_level)

                camera_to_xyz = _camera_to_xyz(getattr(raw, "rgb_xyz_matrix", None))

                frame = SensorFrame(
                    width=int(mosaic.shape[1]),
                    height=int(mosaic.shape[0]),
                    samples=mosaic.copy(),
                    cfa_pattern=np.asarray(raw.raw_pattern, dtype=np.uint8).copy(),
                    black_level=black,
                    white_level=white,
                    white_balance=_normalize_wb(raw.camera_whitebalance),
                    camera_to_xyz=camera_to_xyz,
                    source_path=path,
                )
        except (MissingDependencyError, UnsupportedEncodingError):
            raise
        except Exception as exc:
            raise DecodeError(f"decode failed for {path}: {exc}") from exc

        logger.debug(
            "decoded %s: %dx%d black=%s white=%s wb=%s",
            path,
            frame.width,
            frame.height,
            frame.black_level,
            frame.white_level,
            frame.white_balance,
        )
        return frame
