from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np


# CFA channel indices as reported by LibRaw's raw_colors for RGBG sensors.
RED = 0
GREEN = 1
BLUE = 2
GREEN2 = 3

BAYER_RGGB = np.array([[RED, GREEN], [GREEN2, BLUE]], dtype=np.uint8)


@dataclass
class SensorFrame:
    """Decoded mosaic plus the calibration data needed to develop it.

    ``samples`` is the visible sensor area as a ``(height, width)`` array of
    integer intensities. ``cfa_pattern`` is the repeating colour filter tile
    (2x2 for Bayer, 6x6 for X-Trans) holding channel indices 0..3.
    """

    width: int
    height: int
    samples: np.ndarray
    cfa_pattern: np.ndarray
    black_level: tuple[int, int, int, int]
    white_level: tuple[int, int, int, int]
    white_balance: tuple[float, float, float, float]
    camera_to_xyz: np.ndarray | None
    source_path: Path | None = None

    def cfa_color_at(self, x: int, y: int) -> int:
        tile_h, tile_w = self.cfa_pattern.shape
        return int(self.cfa_pattern[y % tile_h, x % tile_w])

    def cfa_map(self, width: int | None = None, height: int | None = None) -> np.ndarray:
        """Channel index for every cell in the top-left ``height x width`` region."""

        w = self.width if width is None else width
        h = self.height if height is None else height
        tile_h, tile_w = self.cfa_pattern.shape
        reps_y = -(-h // tile_h)
        reps_x = -(-w // tile_w)
        return np.tile(self.cfa_pattern, (reps_y, reps_x))[:h, :w]
