from __future__ import annotations

import hashlib
import json

import numpy as np

from .grading import GradeParams, gamma_encode, grade_array
from .types import LinearBuffer


class GradePipeline:
    """Deterministic grade from linear sRGB to display RGB.

    The same instance serves the interactive preview and the full resolution
    export; only the buffer fed in differs.
    """

    def __init__(self, params: GradeParams) -> None:
        self.params = params

    def transform(self, linear: LinearBuffer | np.ndarray) -> np.ndarray:
        rgb = linear.rgb if isinstance(linear, LinearBuffer) else linear
        if self.params.is_neutral():
            return gamma_encode(rgb)
        return grade_array(rgb, self.params)

    def version_hash(self) -> str:
        blob = json.dumps(self.params.to_dict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(blob).hexdigest()[:16]
