from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import math
from typing import Any, Sequence

import numpy as np


NEUTRAL_TEMPERATURE = 5500.0
GAMMA = 2.2
MIN_LEVELS_RANGE = 0.001
_F32_MAX = float(np.finfo(np.float32).max)

# ITU-R BT.709 luma weights.
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


@dataclass(frozen=True)
class GradeParams:
    exposure: float = 0.0
    contrast: float = 0.0
    temperature: float = NEUTRAL_TEMPERATURE
    tint: float = 0.0
    highlights: float = 0.0
    shadows: float = 0.0
    whites: float = 0.0
    blacks: float = 0.0
    saturation: float = 0.0

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GradeParams":
        values: dict[str, float] = {}
        for name in cls.field_names():
            if name not in data:
                continue
            value = float(data[name])
            if not math.isfinite(value):
                raise ValueError(f"grade parameter {name} must be finite, got {value}")
            values[name] = value
        return cls(**values)

    def to_dict(self) -> dict[str, float]:
        return {k: float(v) for k, v in asdict(self).items()}

    def is_neutral(self) -> bool:
        return self == GradeParams()


def luma(rgb: np.ndarray) -> np.ndarray:
    return np.einsum("...j,j->...", rgb, LUMA_WEIGHTS)


def white_balance_multipliers(temperature: float, tint: float) -> np.ndarray:
    """Per-channel gains for the temperature/tint sliders.

    Warm moves only red, cool moves only blue.
    """

    ratio = (float(temperature) - NEUTRAL_TEMPERATURE) / NEUTRAL_TEMPERATURE
    gains = [1.0 + max(ratio, 0.0), 1.0 + float(tint) / 100.0, 1.0 - min(ratio, 0.0)]
    return np.clip(np.array(gains, dtype=np.float64), -_F32_MAX, _F32_MAX).astype(np.float32)


def _scalar(value: float) -> np.float32:
    # Slider-derived factors are computed in float64 and saturate at the float32 limit.
    return np.float32(np.clip(value, -_F32_MAX, _F32_MAX))


def _exp2(value: float) -> np.float32:
    with np.errstate(over="ignore"):
        return _scalar(np.exp2(np.float64(value)))


def _settle(x: np.ndarray) -> np.ndarray:
    """Keep a stage result finite: NaN becomes 0, overflow saturates."""

    return np.nan_to_num(x, copy=False, nan=0.0, posinf=_F32_MAX, neginf=-_F32_MAX)


def levels_range(whites: float, blacks: float) -> tuple[float, float]:
    """Black point and white-minus-black range, never narrower than 0.001."""

    black_point = float(blacks) * 0.2
    white_point = 1.0 + float(whites) * 0.2
    return black_point, max(white_point - black_point, MIN_LEVELS_RANGE)


def gamma_encode(linear_rgb: np.ndarray) -> np.ndarray:
    x = np.asarray(linear_rgb, dtype=np.float32)[..., :3]
    with np.errstate(over="ignore", invalid="ignore"):
        # fmax maps NaN to 0 as well as clamping negatives.
        x = _settle(np.power(np.fmax(x, 0.0), np.float32(1.0 / GAMMA)))
    return x.astype(np.float32, copy=False)


def grade_array(linear_rgb: np.ndarray, params: GradeParams) -> np.ndarray:
    """Grade linear RGB to gamma-encoded display RGB.

    Accepts any ``(..., 3)`` array (extra trailing channels such as alpha are
    dropped). Each pixel is graded independently, so preview and export
    buffers go through the same math at any resolution. Output is not
    clamped to 1.0.
    """

    x = np.array(np.asarray(linear_rgb, dtype=np.float32)[..., :3], dtype=np.float32)

    with np.errstate(over="ignore", invalid="ignore"):
        x = _settle(x * white_balance_multipliers(params.temperature, params.tint))

        if params.exposure != 0.0:
            x = _settle(x * _exp2(params.exposure))

        if params.contrast != 0.0:
            c = _scalar(1.0 + params.contrast)
            x = _settle((x - 0.5) * c + 0.5)

        # Both masks come from the luma before either adjustment.
        y = _settle(luma(x))[..., None]

        if params.shadows != 0.0:
            shadow_mask = 1.0 - np.clip(y / 0.6, 0.0, 1.0)
            lift = _scalar(float(_exp2(params.shadows)) - 1.0)
            x = _settle(x + x * (lift * shadow_mask * 0.5))

        if params.highlights != 0.0:
            high_mask = np.clip((y - 0.4) / 0.6, 0.0, 1.0)
            gain = _scalar(float(_exp2(params.highlights)) - 1.0)
            x = _settle(x + x * (gain * high_mask * 0.5))

        black_point, value_range = levels_range(params.whites, params.blacks)
        x = _settle((x - _scalar(black_point)) / _scalar(value_range))

        if params.saturation != 0.0:
            lum = _settle(luma(x))[..., None]
            x = _settle(lum + (x - lum) * _scalar(1.0 + params.saturation))

    return gamma_encode(x)


def grade(rgb: Sequence[float], params: GradeParams) -> tuple[float, float, float]:
    """Grade a single linear pixel."""

    out = grade_array(np.asarray(rgb, dtype=np.float32).reshape(1, -1), params)[0]
    return (float(out[0]), float(out[1]), float(out[2]))
