from __future__ import annotations

from pathlib import Path

from .base import UnsupportedFormatError
from .libraw_decoder import LibRawDecoder
from .types import SensorFrame


RAW_EXTENSIONS = (".arw", ".cr2", ".cr3", ".nef", ".dng", ".raf", ".orf")


class DecoderRegistry:
    def __init__(self) -> None:
        self._libraw = LibRawDecoder()

    def decode(self, path: Path) -> SensorFrame:
        ext = path.suffix.lower()
        if ext in RAW_EXTENSIONS:
            return self._libraw.decode(path)
        raise UnsupportedFormatError(f"unsupported extension {ext} for {path}")
