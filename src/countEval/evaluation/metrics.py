"""
Result containers for detection accuracy evaluation.

Scores flow frame -> video -> group -> run; each level is a small
dataclass holding the level below it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..descriptors import SkippedLine, VideoDescriptor
from ..exceptions import EmptyVideoError
from .analyzer import ScoreSummary, mean_score


class LoopState(Enum):
    """Lifecycle of the per-video frame evaluation loop."""

    OPEN = "open"
    RUNNING = "running"
    EXHAUSTED = "exhausted"  # source ran out of frames
    CANCELLED = "cancelled"  # escape key: stop this video only
    ABORTED = "aborted"      # force-quit key: stop the whole run
    CLOSED = "closed"


@dataclass
class FrameLoopOutcome:
    """Scores collected by one run of the frame loop."""

    scores: List[float] = field(default_factory=list)
    state: LoopState = LoopState.EXHAUSTED
    total_frames: int = 0
    elapsed_seconds: float = 0.0

    @property
    def frames_processed(self) -> int:
        return len(self.scores)


@dataclass
class VideoResult:
    """Accuracy for a single video."""

    descriptor: VideoDescriptor
    frame_scores: List[float] = field(default_factory=list)
    state: LoopState = LoopState.EXHAUSTED
    total_frames: int = 0
    elapsed_seconds: float = 0.0

    @property
    def frames_processed(self) -> int:
        return len(self.frame_scores)

    @property
    def cancelled(self) -> bool:
        return self.state is LoopState.CANCELLED

    @property
    def aborted(self) -> bool:
        return self.state is LoopState.ABORTED

    @property
    def average(self) -> float:
        """Mean frame score. Raises EmptyVideoError if no frame was scored."""
        value = mean_score(self.frame_scores)
        if value is None:
            raise EmptyVideoError(f"No frames were scored for {self.descriptor.path}")
        return value

    @property
    def summary(self) -> ScoreSummary:
        return ScoreSummary.from_scores(self.frame_scores)


@dataclass
class GroupResult:
    """Per-video averages for every video of one animal-count group."""

    group_id: int
    video_results: List[VideoResult] = field(default_factory=list)
    skipped_lines: List[SkippedLine] = field(default_factory=list)
    failed_videos: List[Path] = field(default_factory=list)

    # Set when the group was skipped because its artifact already existed
    resumed: bool = False
    resumed_averages: List[float] = field(default_factory=list)

    persisted_to: Optional[Path] = None

    @property
    def averages(self) -> List[float]:
        """One average per video, in evaluation order."""
        if self.resumed:
            return list(self.resumed_averages)
        return [r.average for r in self.video_results]

    @property
    def mean(self) -> Optional[float]:
        return mean_score(self.averages)

    @property
    def summary(self) -> ScoreSummary:
        return ScoreSummary.from_scores(self.averages)


@dataclass
class RunResult:
    """Outcome of a batch evaluation run."""

    output_base: Path
    groups: Dict[int, GroupResult] = field(default_factory=dict)
    already_evaluated: bool = False
    aborted: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def mean(self) -> Optional[float]:
        """Mean over all video averages of all groups."""
        return mean_score([a for g in self.groups.values() for a in g.averages])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "output_base": str(self.output_base),
            "timestamp": self.timestamp.isoformat(),
            "already_evaluated": self.already_evaluated,
            "aborted": self.aborted,
            "overall_mean": _round(self.mean),
            "groups": {
                str(group_id): {
                    "mean": _round(group.mean),
                    "std": round(group.summary.std, 5),
                    "averages": [round(a, 5) for a in group.averages],
                    "resumed": group.resumed,
                    "skipped_lines": [
                        {"line": s.line, "reason": s.reason} for s in group.skipped_lines
                    ],
                    "failed_videos": [str(p) for p in group.failed_videos],
                    "persisted_to": str(group.persisted_to) if group.persisted_to else None,
                    "videos": [
                        {
                            "path": str(r.descriptor.path),
                            "expected_count": r.descriptor.expected_count,
                            "average": round(r.average, 5),
                            "frames_processed": r.frames_processed,
                            "total_frames": r.total_frames,
                            "state": r.state.value,
                        }
                        for r in group.video_results
                    ],
                }
                for group_id, group in self.groups.items()
            },
        }


def _round(value: Optional[float], digits: int = 5) -> Optional[float]:
    return None if value is None else round(value, digits)
