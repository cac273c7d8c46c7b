from .debug_image import write_linear_debug_tiff
from .grade_params import load_params, save_params
from .image_writer import quantize_rgb8, write_display_image

__all__ = [
    "write_linear_debug_tiff",
    "load_params",
    "save_params",
    "quantize_rgb8",
    "write_display_image",
]
