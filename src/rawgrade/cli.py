from __future__ import annotations

import argparse
import json
import logging
from importlib import metadata
from pathlib import Path
import sys

from rawgrade.color import GradeParams
from rawgrade.config import AppConfig, load_config
from rawgrade.session import SessionCache
from rawgrade.utils.logging_utils import configure_logging
from rawgrade.write import load_params, save_params


logger = logging.getLogger(__name__)


def _version() -> str:
    try:
        return metadata.version("rawgrade")
    except metadata.PackageNotFoundError:
        return "unknown"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rawgrade")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    sub = parser.add_subparsers(dest="command", required=True)

    preview = sub.add_parser("preview", help="Develop a RAW frame at preview size and write the graded image")
    preview.add_argument("input", help="Input RAW frame path")
    preview.add_argument("--out", required=True, help="Output image path (.png, .jpg, .tif)")
    preview.add_argument("--params", default=None, help="Grade parameters JSON (default: neutral)")
    preview.add_argument("--config", default=None, help="Optional YAML config")

    export = sub.add_parser("export", help="Develop a RAW frame at full size and write the graded image")
    export.add_argument("input", help="Input RAW frame path")
    export.add_argument("--out", required=True, help="Output image path (.png, .jpg, .tif)")
    export.add_argument("--params", default=None, help="Grade parameters JSON (default: neutral)")
    export.add_argument("--config", default=None, help="Optional YAML config")

    hist = sub.add_parser("histogram", help="Histogram of the graded preview")
    hist.add_argument("input", help="Input RAW frame path")
    hist.add_argument("--params", default=None, help="Grade parameters JSON (default: neutral)")
    hist.add_argument("--config", default=None, help="Optional YAML config")
    hist.add_argument("--json", action="store_true", help="Emit machine-readable JSON")

    init = sub.add_parser("init-params", help="Write a neutral grade parameters file")
    init.add_argument("out", help="Output JSON path")

    return parser


def _load_app_config(value: str | None) -> AppConfig:
    config = load_config(value) if value else AppConfig()
    configure_logging(config.log_level, config.log_file)
    return config


def _load_grade_params(value: str | None) -> GradeParams:
    if value is None:
        return GradeParams()
    return load_params(Path(value).expanduser().resolve())


def _preview_session(args: argparse.Namespace, config: AppConfig) -> SessionCache:
    from rawgrade.service import load_preview

    session = SessionCache(preview_target_width=config.demosaic.preview_target_width)
    load_preview(session, Path(args.input).expanduser().resolve())
    return session


def _cmd_preview(args: argparse.Namespace) -> int:
    from rawgrade.service import write_preview

    config = _load_app_config(args.config)
    params = _load_grade_params(args.params)
    session = _preview_session(args, config)

    out_path = write_preview(session, params, Path(args.out).expanduser().resolve(), config=config)
    print(str(out_path))
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    from rawgrade.service import export_image

    config = _load_app_config(args.config)
    params = _load_grade_params(args.params)

    out_path = export_image(
        Path(args.input).expanduser().resolve(),
        params,
        Path(args.out).expanduser().resolve(),
        config=config,
    )
    print(str(out_path))
    return 0


def _cmd_histogram(args: argparse.Namespace) -> int:
    from rawgrade.service import preview_histogram

    config = _load_app_config(args.config)
    params = _load_grade_params(args.params)
    session = _preview_session(args, config)
    hist = preview_histogram(session, params, config=config)

    if args.json:
        print(json.dumps(hist.to_json_dict()))
        return 0

    buffer = session.buffer
    assert buffer is not None
    print(f"Preview: {buffer.width}x{buffer.height} (step={buffer.step})")
    print(f"Sampled pixels: {hist.sample_count}")
    for name in ("r", "g", "b", "l"):
        counts = getattr(hist, name)
        peak = int(counts.argmax())
        print(f"  {name}: peak bucket {peak} ({int(counts[peak])} samples)")
    return 0


def _cmd_init_params(args: argparse.Namespace) -> int:
    out = Path(args.out).expanduser().resolve()
    save_params(out, GradeParams())
    print(str(out))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "preview":
            return _cmd_preview(args)
        if args.command == "export":
            return _cmd_export(args)
        if args.command == "histogram":
            return _cmd_histogram(args)
        if args.command == "init-params":
            return _cmd_init_params(args)

        parser.error(f"unknown command: {args.command}")
        return 2
    except Exception as exc:
        logger.exception("fatal error")
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
