from __future__ import annotations

import logging
from typing import Any

import numpy as np


logger = logging.getLogger(__name__)

# sRGB / Rec.709 chromaticities, D65 white.
SRGB_PRIMARIES = np.array([[0.64, 0.33], [0.30, 0.60], [0.15, 0.06]], dtype=np.float64)
D65_WHITE = np.array([0.3127, 0.3290], dtype=np.float64)


def _xy_to_xyz(xy: np.ndarray) -> np.ndarray:
    x, y = float(xy[0]), float(xy[1])
    return np.array([x / y, 1.0, (1.0 - x - y) / y], dtype=np.float64)


def rgb_to_xyz_matrix(primaries: np.ndarray, white_xy: np.ndarray) -> np.ndarray:
    columns = [_xy_to_xyz(p) for p in primaries]
    m = np.column_stack(columns)
    s = np.linalg.solve(m, _xy_to_xyz(white_xy))
    return m * s


# XYZ (D65) -> linear sRGB, from the Rec.709 primaries.
XYZ_D65_TO_SRGB = np.linalg.inv(rgb_to_xyz_matrix(SRGB_PRIMARIES, D65_WHITE))


def camera_to_xyz_3x3(camera_to_xyz: Any) -> np.ndarray | None:
    """Top-left 3x3 block of a camera calibration matrix.

    LibRaw may carry a fourth calibration row or column (second green); its
    contribution is dropped.
    """

    if camera_to_xyz is None:
        return None
    arr = np.asarray(camera_to_xyz, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] < 3 or arr.shape[1] < 3:
        raise ValueError(f"camera_to_xyz must be at least 3x3, got {arr.shape}")
    return arr[:3, :3]


def calibration_matrix(camera_to_xyz: Any) -> np.ndarray:
    """Camera RGB -> linear sRGB, composed once per frame.

    A matrix whose nine entries sum to exactly zero means the calibration is
    missing, so identity is used instead.
    """

    cam = camera_to_xyz_3x3(camera_to_xyz)
    if cam is None:
        logger.debug("no camera calibration, using identity")
        return np.eye(3, dtype=np.float64)

    m = XYZ_D65_TO_SRGB @ cam
    if float(np.sum(m)) == 0.0:
        logger.debug("degenerate camera calibration, using identity")
        return np.eye(3, dtype=np.float64)
    return m
