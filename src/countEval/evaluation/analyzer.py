"""
Accuracy scoring for detection counts.

Computes the per-frame score (detections found / animals expected) and
reduces score sequences to the video- and group-level statistics.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np


logger = logging.getLogger(__name__)


def frame_score(
    detection_count: int,
    expected_count: int,
    penalize_extra: bool = False,
) -> float:
    """
    Score a single frame.

    Args:
        detection_count: Number of objects the detector found (>= 0)
        expected_count: Ground-truth number of animals (> 0)
        penalize_extra: Count each extra detection against the score
            instead of capping at 1.0

    Returns:
        Score in [0, 1]
    """
    if expected_count <= 0:
        raise ValueError(f"expected_count must be positive, got {expected_count}")
    if detection_count < 0:
        raise ValueError(f"detection_count must be non-negative, got {detection_count}")

    ratio = detection_count / expected_count

    if penalize_extra and ratio > 1.0:
        return max(0.0, 1.0 - abs(1.0 - ratio))

    return min(1.0, ratio)


def mean_score(scores: Sequence[float]) -> Optional[float]:
    """Arithmetic mean of ``scores``, or None when there are none."""
    if len(scores) == 0:
        return None
    return float(np.mean(scores))


@dataclass
class ScoreSummary:
    """Distribution statistics for a sequence of scores."""

    count: int = 0
    mean: Optional[float] = None
    std: float = 0.0
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @classmethod
    def from_scores(cls, scores: Sequence[float]) -> "ScoreSummary":
        if len(scores) == 0:
            return cls()

        values = np.asarray(scores, dtype=float)
        return cls(
            count=int(values.size),
            mean=float(values.mean()),
            std=float(values.std()),
            minimum=float(values.min()),
            maximum=float(values.max()),
        )


def format_elapsed(seconds: float) -> str:
    """Format a duration as ``<minutes>m <seconds>s``, e.g. ``2m 5.250s``."""
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - minutes * 60:.3f}s"


class TimingContext:
    """Context manager for timing code blocks."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.elapsed: float = 0.0

    def __enter__(self) -> "TimingContext":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self.start_time
