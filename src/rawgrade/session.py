from __future__ import annotations

import logging
from pathlib import Path
import threading

import numpy as np

from rawgrade.color import GradeParams, GradePipeline, LinearBuffer, Quality, demosaic
from rawgrade.color.demosaic import DEFAULT_PREVIEW_TARGET_WIDTH
from rawgrade.decode.base import Decoder


logger = logging.getLogger(__name__)


class NoImageLoadedError(RuntimeError):
    pass


class SessionCache:
    """Holds the most recent linear buffer of an edit session.

    Decoding and demosaic run outside the lock; only the swap of the cached
    buffer is guarded, so readers see either the previous or the new buffer.
    """

    def __init__(
        self,
        decoder: Decoder | None = None,
        preview_target_width: int = DEFAULT_PREVIEW_TARGET_WIDTH,
    ) -> None:
        self._lock = threading.Lock()
        self._decoder = decoder
        self._buffer: LinearBuffer | None = None
        self._source_path: Path | None = None
        self.preview_target_width = int(preview_target_width)

    def _get_decoder(self) -> Decoder:
        if self._decoder is None:
            from rawgrade.decode import DecoderRegistry

            self._decoder = DecoderRegistry()
        return self._decoder

    def load(self, path: Path, quality: Quality | str = Quality.PREVIEW) -> LinearBuffer:
        quality = Quality(quality)
        frame = self._get_decoder().decode(path)
        buffer = demosaic(frame, quality=quality, preview_target_width=self.preview_target_width)
        self.store(buffer, source_path=path)
        logger.info("cached %dx%d %s buffer for %s", buffer.width, buffer.height, quality.value, path)
        return buffer

    def store(self, buffer: LinearBuffer, source_path: Path | None = None) -> None:
        with self._lock:
            self._buffer = buffer
            self._source_path = source_path

    def snapshot(self) -> tuple[LinearBuffer | None, Path | None]:
        with self._lock:
            return self._buffer, self._source_path

    @property
    def buffer(self) -> LinearBuffer | None:
        return self.snapshot()[0]

    def clear(self) -> None:
        with self._lock:
            self._buffer = None
            self._source_path = None

    def require_buffer(self) -> LinearBuffer:
        buffer = self.buffer
        if buffer is None:
            raise NoImageLoadedError("no image loaded in session")
        return buffer

    def grade_preview(self, params: GradeParams) -> np.ndarray:
        return GradePipeline(params).transform(self.require_buffer())
