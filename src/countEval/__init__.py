"""
countEval: batch evaluation of animal-counting object detectors on video.
"""

from .config import PipelineConfig, get_default_config
from .descriptors import CropRegion, SkippedLine, VideoDescriptor, parse_descriptor
from .exceptions import (
    EmptyVideoError,
    EvaluationError,
    MalformedDescriptor,
    ModelInitializationError,
    SourceOpenError,
)
from .pipeline import BatchEvaluator, run_batch

__version__ = "0.1.0"

__all__ = [
    "PipelineConfig",
    "get_default_config",
    "CropRegion",
    "SkippedLine",
    "VideoDescriptor",
    "parse_descriptor",
    "EvaluationError",
    "MalformedDescriptor",
    "SourceOpenError",
    "EmptyVideoError",
    "ModelInitializationError",
    "BatchEvaluator",
    "run_batch",
]
