"""
Evaluation framework for detection count accuracy.

Scores each frame by detections found over animals expected, then
averages frame -> video -> group:
- Frame scoring and summary statistics
- Per-video frame loop with live display and cancellation
- Console, JSON and Markdown reporting
"""

from .analyzer import ScoreSummary, TimingContext, format_elapsed, frame_score, mean_score
from .metrics import (
    FrameLoopOutcome,
    GroupResult,
    LoopState,
    RunResult,
    VideoResult,
)
from .frame_loop import CancellationToken, FrameEvaluationLoop
from .video import VideoEvaluator
from .reporter import EvaluationReporter

__all__ = [
    # Scoring
    "frame_score",
    "mean_score",
    "format_elapsed",
    "ScoreSummary",
    "TimingContext",
    # Results
    "LoopState",
    "FrameLoopOutcome",
    "VideoResult",
    "GroupResult",
    "RunResult",
    # Evaluation
    "CancellationToken",
    "FrameEvaluationLoop",
    "VideoEvaluator",
    # Reporter
    "EvaluationReporter",
]
