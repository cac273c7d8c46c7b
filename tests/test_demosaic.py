from __future__ import annotations

import numpy as np
import pytest

from rawgrade.color.calibration import XYZ_D65_TO_SRGB
from rawgrade.color.demosaic import demosaic, select_step, white_balance_gains
from rawgrade.color.types import Quality
from rawgrade.decode.base import DecodeError, UnsupportedEncodingError
from rawgrade.decode.types import BAYER_RGGB, SensorFrame


# camera -> XYZ that composes with XYZ -> sRGB to (numerically) identity.
SRGB_TO_XYZ = np.linalg.inv(XYZ_D65_TO_SRGB)


def _frame(
    samples: np.ndarray,
    pattern: np.ndarray = BAYER_RGGB,
    black: tuple[int, int, int, int] = (0, 0, 0, 0),
    white: tuple[int, int, int, int] = (4095, 4095, 4095, 4095),
    wb: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0),
    camera_to_xyz: np.ndarray | None = SRGB_TO_XYZ,
) -> SensorFrame:
    arr = np.asarray(samples)
    return SensorFrame(
        width=arr.shape[1],
        height=arr.shape[0],
        samples=arr,
        cfa_pattern=np.asarray(pattern, dtype=np.uint8),
        black_level=black,
        white_level=white,
        white_balance=wb,
        camera_to_xyz=camera_to_xyz,
    )


def _per_channel(height: int, width: int, r: int, g: int, b: int) -> np.ndarray:
    values = np.array([r, g, b, g], dtype=np.uint16)
    cfa = np.tile(BAYER_RGGB, (height // 2, width // 2))
    return values[cfa]


def test_select_step_preview_is_even_and_at_least_two() -> None:
    assert select_step(4, Quality.PREVIEW) == 2
    assert select_step(1024, Quality.PREVIEW) == 2
    assert select_step(3000, Quality.PREVIEW) == 4
    assert select_step(5000, Quality.PREVIEW) == 6
    for width in range(1, 20000, 37):
        step = select_step(width, Quality.PREVIEW)
        assert step >= 2
        assert step % 2 == 0


def test_select_step_full_is_native_cfa_period() -> None:
    assert select_step(6000, Quality.FULL) == 2
    assert select_step(3, Quality.FULL) == 2


def test_select_step_respects_preview_target() -> None:
    assert select_step(6000, Quality.PREVIEW, preview_target_width=3000) == 2
    assert select_step(6000, Quality.PREVIEW, preview_target_width=1000) == 6
    with pytest.raises(ValueError):
        select_step(6000, Quality.PREVIEW, preview_target_width=0)


def test_uniform_bayer_frame_develops_to_mid_gray() -> None:
    frame = _frame(np.full((4, 4), 2048, dtype=np.uint16))
    buffer = demosaic(frame, Quality.FULL)

    assert (buffer.width, buffer.height, buffer.step) == (2, 2, 2)
    assert buffer.pixels.shape == (2, 2, 4)
    assert np.allclose(buffer.rgb, 2048.0 / 4095.0, atol=1e-4)
    assert np.all(buffer.pixels[..., 3] == 1.0)


def test_single_block_yields_single_pixel() -> None:
    frame = _frame(np.full((2, 2), 2048, dtype=np.uint16))
    buffer = demosaic(frame, Quality.PREVIEW)

    assert (buffer.width, buffer.height) == (1, 1)
    r, g, b, a = (float(v) for v in buffer.pixels[0, 0])
    assert r == pytest.approx(0.5, abs=1e-3)
    assert g == pytest.approx(0.5, abs=1e-3)
    assert b == pytest.approx(0.5, abs=1e-3)
    assert a == 1.0


def test_output_dimensions_truncate_partial_blocks() -> None:
    assert demosaic(_frame(np.zeros((6, 6), dtype=np.uint16))).pixels.shape[:2] == (3, 3)
    assert demosaic(_frame(np.zeros((5, 7), dtype=np.uint16))).pixels.shape[:2] == (2, 3)


def test_white_balance_gains_normalized_to_green() -> None:
    assert np.allclose(white_balance_gains((4.0, 2.0, 3.0, 2.0)), [2.0, 1.0, 1.5, 1.0])


@pytest.mark.parametrize("green", [0.0, -1.0])
def test_white_balance_gains_default_when_green_not_positive(green: float) -> None:
    gains = white_balance_gains((2.0, green, 1.5, 0.0))
    assert np.all(gains == 1.0)
    assert np.isfinite(gains).all()


def test_white_balance_applied_per_channel() -> None:
    frame = _frame(
        np.full((2, 2), 1024, dtype=np.uint16),
        white=(4096, 4096, 4096, 4096),
        wb=(2.0, 1.0, 0.5, 1.0),
    )
    rgb = demosaic(frame).rgb[0, 0]
    assert np.allclose(rgb, [0.5, 0.25, 0.125], atol=1e-5)


def test_zero_green_white_balance_leaves_samples_unscaled() -> None:
    samples = np.full((2, 2), 1024, dtype=np.uint16)
    base = demosaic(_frame(samples)).rgb
    zeroed = demosaic(_frame(samples, wb=(2.0, 0.0, 3.0, 0.0))).rgb
    assert np.allclose(base, zeroed)


def test_normalization_range_comes_from_green() -> None:
    frame = _frame(
        np.full((2, 2), 1024, dtype=np.uint16),
        white=(4096, 2048, 16384, 2048),
    )
    rgb = demosaic(frame).rgb[0, 0]
    assert np.allclose(rgb, [0.5, 0.5, 0.5], atol=1e-5)


def test_black_level_subtracted_and_clamped() -> None:
    samples = _per_channel(2, 2, r=100, g=1124, b=50)
    frame = _frame(samples, black=(200, 100, 200, 100), white=(4196, 4196, 4196, 4196), camera_to_xyz=None)
    r, g, b = (float(v) for v in demosaic(frame).rgb[0, 0])
    assert r == 0.0
    assert g == pytest.approx(1024.0 / 4096.0, abs=1e-5)
    assert b == 0.0


@pytest.mark.parametrize("camera_to_xyz", [np.zeros((3, 3)), np.zeros((3, 4)), None])
def test_degenerate_calibration_uses_identity(camera_to_xyz: np.ndarray | None) -> None:
    samples = _per_channel(4, 4, r=1000, g=2000, b=3000)
    buffer = demosaic(_frame(samples, camera_to_xyz=camera_to_xyz))
    expected = np.array([1000.0, 2000.0, 3000.0]) / 4095.0
    assert np.allclose(buffer.rgb, expected, atol=1e-6)


def test_calibration_matrix_applied() -> None:
    samples = _per_channel(2, 2, r=1000, g=2000, b=3000)
    buffer = demosaic(_frame(samples, camera_to_xyz=np.eye(3)))
    camera = np.array([1000.0, 2000.0, 3000.0]) / 4095.0
    expected = np.clip(XYZ_D65_TO_SRGB @ camera, 0.0, 1.0)
    assert np.allclose(buffer.rgb[0, 0], expected, atol=1e-5)


def test_calibration_overshoot_is_clamped() -> None:
    frame = _frame(np.full((2, 2), 3000, dtype=np.uint16), wb=(4.0, 1.0, 1.0, 1.0), camera_to_xyz=None)
    rgb = demosaic(frame).rgb[0, 0]
    assert float(rgb[0]) == 1.0
    assert float(rgb.min()) >= 0.0


def test_missing_channel_in_block_defaults_to_zero() -> None:
    all_red = np.zeros((2, 2), dtype=np.uint8)
    frame = _frame(np.full((4, 4), 2048, dtype=np.uint16), pattern=all_red, camera_to_xyz=None)
    rgb = demosaic(frame).rgb
    assert np.isfinite(rgb).all()
    assert np.allclose(rgb[..., 0], 2048.0 / 4095.0)
    assert np.all(rgb[..., 1:] == 0.0)


def test_xtrans_sized_pattern_tiles() -> None:
    pattern = np.array(
        [
            [1, 1, 0, 1, 1, 2],
            [1, 1, 2, 1, 1, 0],
            [2, 0, 1, 0, 2, 1],
            [1, 1, 2, 1, 1, 0],
            [1, 1, 0, 1, 1, 2],
            [0, 2, 1, 2, 0, 1],
        ],
        dtype=np.uint8,
    )
    frame = _frame(np.full((12, 12), 2048, dtype=np.uint16), pattern=pattern)
    assert frame.cfa_color_at(2, 0) == 0
    assert frame.cfa_color_at(8, 6) == 0
    buffer = demosaic(frame, Quality.FULL)
    assert buffer.pixels.shape == (6, 6, 4)
    assert np.isfinite(buffer.rgb).all()


def test_flat_sample_sequence_is_accepted() -> None:
    samples = np.full(16, 2048, dtype=np.uint16)
    frame = SensorFrame(
        width=4,
        height=4,
        samples=samples,
        cfa_pattern=BAYER_RGGB,
        black_level=(0, 0, 0, 0),
        white_level=(4095, 4095, 4095, 4095),
        white_balance=(1.0, 1.0, 1.0, 1.0),
        camera_to_xyz=None,
    )
    assert demosaic(frame).pixels.shape == (2, 2, 4)


def test_float_samples_are_rejected() -> None:
    frame = _frame(np.full((4, 4), 0.5, dtype=np.float32))
    with pytest.raises(UnsupportedEncodingError):
        demosaic(frame)


def test_inverted_green_levels_are_rejected() -> None:
    frame = _frame(np.full((4, 4), 10, dtype=np.uint16), black=(0, 512, 0, 512), white=(4095, 512, 4095, 512))
    with pytest.raises(DecodeError):
        demosaic(frame)


def test_buffer_is_read_only() -> None:
    buffer = demosaic(_frame(np.full((4, 4), 2048, dtype=np.uint16)))
    with pytest.raises(ValueError):
        buffer.pixels[0, 0, 0] = 0.0
