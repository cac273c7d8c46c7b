from .base import DecodeError, MissingDependencyError, UnsupportedEncodingError, UnsupportedFormatError
from .registry import DecoderRegistry
from .types import SensorFrame

__all__ = [
    "DecodeError",
    "MissingDependencyError",
    "UnsupportedEncodingError",
    "UnsupportedFormatError",
    "DecoderRegistry",
    "SensorFrame",
]
