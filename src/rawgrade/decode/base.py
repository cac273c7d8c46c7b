from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .types import SensorFrame


class DecodeError(RuntimeError):
    pass


class UnsupportedFormatError(DecodeError):
    pass


class UnsupportedEncodingError(DecodeError):
    """Sensor samples arrive in a representation the demosaic engine cannot read."""


class MissingDependencyError(DecodeError):
    pass


class Decoder(Protocol):
    def decode(self, path: Path) -> SensorFrame:
        ...
