from .demosaic import demosaic, select_step
from .grading import GradeParams, grade, grade_array
from .pipeline import GradePipeline
from .types import LinearBuffer, Quality

__all__ = [
    "demosaic",
    "select_step",
    "GradeParams",
    "grade",
    "grade_array",
    "GradePipeline",
    "LinearBuffer",
    "Quality",
]
