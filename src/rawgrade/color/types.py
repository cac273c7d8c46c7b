from __future__ import annotations

from dataclasses import dataclass
import enum

import numpy as np


class Quality(str, enum.Enum):
    PREVIEW = "preview"
    FULL = "full"


@dataclass(frozen=True, eq=False)
class LinearBuffer:
    """Display-referred linear RGBA produced by one demosaic call.

    ``pixels`` has shape ``(height, width, 4)``; alpha is always 1.0. The
    array is marked read-only so a buffer shared through the session cache
    cannot be modified in place.
    """

    width: int
    height: int
    pixels: np.ndarray
    step: int

    @classmethod
    def from_rgb(cls, rgb: np.ndarray, step: int) -> "LinearBuffer":
        rgb = np.asarray(rgb, dtype=np.float32)
        if rgb.ndim != 3 or rgb.shape[2] != 3:
            raise ValueError(f"expected HxWx3 RGB image, got {rgb.shape}")
        height, width, _ = rgb.shape
        rgba = np.ones((height, width, 4), dtype=np.float32)
        rgba[..., :3] = rgb
        rgba.setflags(write=False)
        return cls(width=width, height=height, pixels=rgba, step=step)

    @property
    def rgb(self) -> np.ndarray:
        return self.pixels[..., :3]
