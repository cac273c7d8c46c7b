from __future__ import annotations

import json
import logging
from pathlib import Path

from rawgrade.color.grading import GradeParams


logger = logging.getLogger(__name__)


def save_params(path: Path, params: GradeParams) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(params.to_dict(), f, indent=2, sort_keys=True)
        f.write("\n")


def load_params(path: Path) -> GradeParams:
    """Read grade parameters; missing fields keep their neutral value."""

    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"grade parameters must be a JSON object: {path}")

    unknown = sorted(set(raw) - set(GradeParams.field_names()))
    if unknown:
        logger.warning("ignoring unknown grade parameters in %s: %s", path, ", ".join(unknown))
    return GradeParams.from_dict(raw)
