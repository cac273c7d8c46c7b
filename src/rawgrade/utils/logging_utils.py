from __future__ import annotations

import logging
from pathlib import Path


def configure_logging(level: str | int, log_file: Path | None = None) -> None:
    if isinstance(level, int):
        resolved_level = level
    else:
        resolved_level = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=resolved_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
        force=True,
    )
    # PIL logs every plugin import at DEBUG.
    logging.getLogger("PIL").setLevel(max(resolved_level, logging.INFO))
