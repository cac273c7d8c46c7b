from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .grading import GradeParams, grade_array
from .types import LinearBuffer


@dataclass
class Histogram:
    r: np.ndarray
    g: np.ndarray
    b: np.ndarray
    l: np.ndarray

    @property
    def sample_count(self) -> int:
        return int(self.r.sum())

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "r": [int(v) for v in self.r],
            "g": [int(v) for v in self.g],
            "b": [int(v) for v in self.b],
            "l": [int(v) for v in self.l],
        }


def compute_histogram(
    buffer: LinearBuffer,
    params: GradeParams,
    buckets: int = 256,
    sample_stride: int = 20,
) -> Histogram:
    """Histogram of the graded image, sampling every ``sample_stride``-th pixel."""

    if buckets < 1:
        raise ValueError("buckets must be >= 1")
    if sample_stride < 1:
        raise ValueError("sample_stride must be >= 1")

    flat = buffer.rgb.reshape(-1, 3)[::sample_stride]
    graded = grade_array(flat, params)
    graded = np.nan_to_num(graded, nan=0.0, posinf=1.0, neginf=0.0)

    top = buckets - 1
    idx = np.clip(np.floor(graded * top), 0, top).astype(np.intp)
    lum = (idx.sum(axis=1) // 3).astype(np.intp)

    return Histogram(
        r=np.bincount(idx[:, 0], minlength=buckets),
        g=np.bincount(idx[:, 1], minlength=buckets),
        b=np.bincount(idx[:, 2], minlength=buckets),
        l=np.bincount(lum, minlength=buckets),
    )
