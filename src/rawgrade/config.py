from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rawgrade.color.demosaic import DEFAULT_PREVIEW_TARGET_WIDTH


@dataclass
class DemosaicConfig:
    preview_target_width: int = DEFAULT_PREVIEW_TARGET_WIDTH


@dataclass
class OutputConfig:
    jpeg_quality: int = 95
    write_debug_tiff: bool = False


@dataclass
class HistogramConfig:
    buckets: int = 256
    sample_stride: int = 20


@dataclass
class AppConfig:
    demosaic: DemosaicConfig = field(default_factory=DemosaicConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    histogram: HistogramConfig = field(default_factory=HistogramConfig)
    log_level: str = "INFO"
    log_file: Path | None = None


def _expand_path(value: str | None, base: Path) -> Path | None:
    if value in (None, ""):
        return None
    path = Path(value)
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _require_min(name: str, value: int, minimum: int) -> int:
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"config section {key} must be a mapping")
    return value


def load_config(path: str | Path) -> AppConfig:
    try:
        import yaml  # type: ignore
    except Exception as exc:
        raise RuntimeError("PyYAML is required for config loading. Install with: pip install PyYAML") from exc

    cfg_path = Path(path).expanduser().resolve()
    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"config root must be a mapping: {cfg_path}")

    base = cfg_path.parent
    demosaic_raw = _section(raw, "demosaic")
    output_raw = _section(raw, "output")
    histogram_raw = _section(raw, "histogram")

    demosaic = DemosaicConfig(
        preview_target_width=_require_min(
            "demosaic.preview_target_width",
            int(demosaic_raw.get("preview_target_width", DEFAULT_PREVIEW_TARGET_WIDTH)),
            1,
        ),
    )

    jpeg_quality = int(output_raw.get("jpeg_quality", 95))
    if not 1 <= jpeg_quality <= 100:
        raise ValueError(f"output.jpeg_quality must be within 1..100, got {jpeg_quality}")
    output = OutputConfig(
        jpeg_quality=jpeg_quality,
        write_debug_tiff=bool(output_raw.get("write_debug_tiff", False)),
    )

    histogram = HistogramConfig(
        buckets=_require_min("histogram.buckets", int(histogram_raw.get("buckets", 256)), 1),
        sample_stride=_require_min("histogram.sample_stride", int(histogram_raw.get("sample_stride", 20)), 1),
    )

    app = AppConfig(
        demosaic=demosaic,
        output=output,
        histogram=histogram,
        log_level=str(raw.get("log_level", "INFO")),
        log_file=_expand_path(raw.get("log_file"), base),
    )

    ensure_dirs(app)
    return app


def ensure_dirs(config: AppConfig) -> None:
    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
