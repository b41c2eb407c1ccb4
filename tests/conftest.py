"""Shared fakes: detector, video source and display without models or windows."""

from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pytest

from countEval.config import PipelineConfig, VideoConfig
from countEval.detection import BaseDetector, BoundingBox, Detection
from countEval.exceptions import SourceOpenError


FRAME_SHAPE = (48, 64, 3)

# A frame of this value makes FakeDetector raise
INFERENCE_FAILURE = 255


def make_frame(detections: int) -> np.ndarray:
    """A frame whose pixel values tell FakeDetector how many objects to report."""
    return np.full(FRAME_SHAPE, detections, dtype=np.uint8)


class FakeDetector(BaseDetector):
    """Reports as many detections as the top-left pixel value of the frame."""

    def __init__(self):
        self.calls = 0

    def detect(self, frame: np.ndarray) -> List[Detection]:
        self.calls += 1
        count = int(frame[0, 0, 0])
        if count == INFERENCE_FAILURE:
            raise RuntimeError("CUDA error: an illegal memory access was encountered")
        return [
            Detection(box=BoundingBox(x1=i, y1=i, x2=i + 5, y2=i + 5), score=0.9)
            for i in range(count)
        ]


class FakeVideoSource:
    """In-memory video source; frames are given as per-frame detection counts."""

    def __init__(self, path: Path, counts: List[int], fail_open: bool = False):
        self.path = Path(path)
        self._frames = [make_frame(c) for c in counts]
        self._fail_open = fail_open
        self._index = 0
        self.opened = False
        self.closed = False

    def open(self) -> "FakeVideoSource":
        if self._fail_open:
            raise SourceOpenError(f"Could not open video file: {self.path}")
        self.opened = True
        return self

    def next_frame(self) -> Optional[np.ndarray]:
        if self._index >= len(self._frames):
            return None
        frame = self._frames[self._index]
        self._index += 1
        return frame

    @property
    def current_frame_index(self) -> int:
        return self._index - 1

    @property
    def total_frame_count(self) -> int:
        return len(self._frames)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeVideoSource":
        return self.open()

    def __exit__(self, *args) -> None:
        self.close()


class FakeSourceFactory:
    """Builds FakeVideoSources by file name; unknown names fail to open."""

    def __init__(self, videos: Dict[str, List[int]]):
        self.videos = videos
        self.sources: List[FakeVideoSource] = []

    def __call__(self, path: Path, config: Optional[VideoConfig] = None) -> FakeVideoSource:
        path = Path(path)
        counts = self.videos.get(path.name)
        source = FakeVideoSource(path, counts or [], fail_open=counts is None)
        self.sources.append(source)
        return source


class FakeDisplay:
    """Records shown frames and replays scripted key presses (one per frame)."""

    def __init__(self, keys: Optional[List[int]] = None):
        self.keys = list(keys or [])
        self.shown = 0
        self.closed = False

    def show(self, frame: np.ndarray, detections: list) -> None:
        self.shown += 1

    def poll_key(self, delay_ms: Optional[int] = None) -> int:
        return self.keys.pop(0) if self.keys else -1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture
def config() -> PipelineConfig:
    config = PipelineConfig()
    config.evaluation.show_progress = False
    return config


@pytest.fixture
def video_dir(tmp_path: Path) -> Path:
    videos = tmp_path / "videos"
    videos.mkdir()
    return videos


def touch_videos(directory: Path, *names: str) -> List[Path]:
    paths = []
    for name in names:
        path = directory / name
        path.write_bytes(b"")
        paths.append(path)
    return paths


def write_descriptor_file(path: Path, lines: List[str]) -> Path:
    path.write_text("\n".join(lines) + "\n")
    return path
