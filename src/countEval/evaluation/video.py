"""
Single-video evaluation: open the source, run the frame loop, average.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from tqdm import tqdm

from ..config import PipelineConfig, VideoConfig, get_default_config
from ..descriptors import VideoDescriptor
from ..detection import BaseDetector
from ..exceptions import EmptyVideoError
from ..io import VideoReader
from ..visualization import LiveDisplay
from .frame_loop import CancellationToken, Display, FrameEvaluationLoop
from .metrics import LoopState, VideoResult


logger = logging.getLogger(__name__)

SourceFactory = Callable[[Path, VideoConfig], VideoReader]


class VideoEvaluator:
    """
    Evaluates a detector on one video at a time.

    Args:
        detector: Shared inference collaborator
        config: Pipeline configuration. Uses defaults if None.
        source_factory: Builds a video source for a path (default: VideoReader)
        display_factory: Builds the live display (default: LiveDisplay)
        token: Cancellation token shared with the orchestrator

    Example:
        >>> evaluator = VideoEvaluator(YoloDetector("best.pt", DetectorConfig()))
        >>> result = evaluator.evaluate(descriptor)
        >>> print(f"Average accuracy: {result.average:.5f}")
    """

    def __init__(
        self,
        detector: BaseDetector,
        config: Optional[PipelineConfig] = None,
        source_factory: Optional[SourceFactory] = None,
        display_factory: Optional[Callable[[], Display]] = None,
        token: Optional[CancellationToken] = None,
    ):
        self._config = config or get_default_config()
        self._source_factory = source_factory or VideoReader
        if display_factory is None:
            display_factory = lambda: LiveDisplay(self._config.display)  # noqa: E731
        self._loop = FrameEvaluationLoop(
            detector,
            self._config,
            display_factory=display_factory,
            token=token,
        )

    @property
    def token(self) -> CancellationToken:
        return self._loop.token

    def evaluate(self, descriptor: VideoDescriptor) -> VideoResult:
        """
        Evaluate the detector on one video.

        Raises:
            SourceOpenError: if the video cannot be opened or read
            EmptyVideoError: if no frame could be scored

        Returns:
            VideoResult; ``aborted`` is set if the user asked to stop the run
        """
        with self._source_factory(descriptor.path, self._config.video) as source:
            total = source.total_frame_count or None
            with tqdm(
                total=total,
                bar_format="{n_fmt} of {total_fmt} frames processed",
                disable=not self._config.evaluation.show_progress,
                leave=True,
            ) as bar:

                def on_progress(done: int, _total: int) -> None:
                    bar.update(done - bar.n)

                outcome = self._loop.run(source, descriptor, on_progress=on_progress)

        if not outcome.scores and outcome.state is not LoopState.ABORTED:
            raise EmptyVideoError(f"No frames could be read from {descriptor.path}")

        return VideoResult(
            descriptor=descriptor,
            frame_scores=outcome.scores,
            state=outcome.state,
            total_frames=outcome.total_frames,
            elapsed_seconds=outcome.elapsed_seconds,
        )
