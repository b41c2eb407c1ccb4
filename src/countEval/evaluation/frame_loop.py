"""
Per-video frame evaluation loop.

Pulls frames from an opened video source, asks the detector for
detections on the cropped region, scores each frame and, when live
visualization is on, shows the frame and polls the keyboard so the user
can skip the current video (escape) or stop the whole run (shift-q).

Both requests go through a ``CancellationToken`` that is checked once
per frame; nothing preempts an in-flight inference call.
"""

import logging
from typing import Callable, Optional, Protocol

import numpy as np

from ..config import PipelineConfig
from ..descriptors import VideoDescriptor
from ..detection import BaseDetector
from ..exceptions import SourceOpenError
from .analyzer import TimingContext, format_elapsed, frame_score
from .metrics import FrameLoopOutcome, LoopState


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class FrameSource(Protocol):
    """What the loop needs from a video source."""

    def next_frame(self) -> Optional[np.ndarray]: ...

    @property
    def current_frame_index(self) -> int: ...

    @property
    def total_frame_count(self) -> int: ...

    def close(self) -> None: ...


class Display(Protocol):
    """What the loop needs from a live display."""

    def show(self, frame: np.ndarray, detections: list) -> None: ...

    def poll_key(self, delay_ms: Optional[int] = None) -> int: ...

    def close(self) -> None: ...


class CancellationToken:
    """
    Cooperative stop requests shared by the loop and its callers.

    ``cancel_video`` ends the current video only and is cleared when the
    next video starts; ``abort`` ends the whole run and stays set.
    """

    def __init__(self):
        self._video_cancelled = False
        self._abort_requested = False

    def cancel_video(self) -> None:
        self._video_cancelled = True

    def abort(self) -> None:
        self._abort_requested = True

    def reset_video(self) -> None:
        self._video_cancelled = False

    def reset(self) -> None:
        """Clear both flags before a new run."""
        self._video_cancelled = False
        self._abort_requested = False

    @property
    def video_cancelled(self) -> bool:
        return self._video_cancelled

    @property
    def abort_requested(self) -> bool:
        return self._abort_requested


class FrameEvaluationLoop:
    """
    Score every frame of one video.

    Args:
        detector: Shared inference collaborator
        config: Pipeline configuration (scoring, display and key bindings)
        display_factory: Creates the live display; only called when
            ``config.evaluation.show_live_visualization`` is set
        token: Cancellation token shared with the caller
    """

    def __init__(
        self,
        detector: BaseDetector,
        config: PipelineConfig,
        display_factory: Optional[Callable[[], Display]] = None,
        token: Optional[CancellationToken] = None,
    ):
        self._detector = detector
        self._config = config
        self._display_factory = display_factory
        self.token = token or CancellationToken()
        self.state = LoopState.OPEN

    @property
    def _show_display(self) -> bool:
        return (
            self._config.evaluation.show_live_visualization
            and self._display_factory is not None
        )

    def run(
        self,
        source: FrameSource,
        descriptor: VideoDescriptor,
        on_progress: Optional[ProgressCallback] = None,
    ) -> FrameLoopOutcome:
        """
        Evaluate frames until the source is exhausted or a stop is requested.

        The display and the source are closed on every exit path.

        Returns:
            FrameLoopOutcome with one score per processed frame
        """
        self.state = LoopState.OPEN
        self.token.reset_video()

        outcome = FrameLoopOutcome(total_frames=source.total_frame_count)
        display = self._display_factory() if self._show_display else None

        try:
            with TimingContext() as timer:
                self.state = LoopState.RUNNING
                while self.state is LoopState.RUNNING:
                    self.state = self._step(source, descriptor, display, outcome, on_progress)
            outcome.elapsed_seconds = timer.elapsed
        finally:
            if display is not None:
                display.close()
            source.close()

        outcome.state = self.state
        self.state = LoopState.CLOSED

        logger.info(f"Elapsed time: {format_elapsed(outcome.elapsed_seconds)}")
        if outcome.state is LoopState.CANCELLED:
            logger.info(
                f"Skipped rest of {descriptor.path.name} after "
                f"{outcome.frames_processed} frames"
            )
        return outcome

    def _step(
        self,
        source: FrameSource,
        descriptor: VideoDescriptor,
        display: Optional[Display],
        outcome: FrameLoopOutcome,
        on_progress: Optional[ProgressCallback],
    ) -> LoopState:
        frame = source.next_frame()
        if frame is None:
            return LoopState.EXHAUSTED

        region = descriptor.crop.apply(frame)
        if region.size == 0:
            raise SourceOpenError(
                f"Crop region ({descriptor.crop}) lies outside frame of shape "
                f"{frame.shape[:2]} in {descriptor.path}"
            )

        detections = self._detector.detect(region)
        outcome.scores.append(
            frame_score(
                len(detections),
                descriptor.expected_count,
                penalize_extra=self._config.evaluation.penalize_extra_detections,
            )
        )

        if on_progress is not None:
            on_progress(source.current_frame_index + 1, source.total_frame_count)

        if display is not None:
            display.show(region, detections)
            self._handle_key(display.poll_key(self._config.display.key_poll_ms))

        if self.token.abort_requested:
            return LoopState.ABORTED
        if self.token.video_cancelled:
            return LoopState.CANCELLED
        return LoopState.RUNNING

    def _handle_key(self, key: int) -> None:
        display_config = self._config.display
        if key in display_config.abort_keys:
            logger.warning("Quit key pressed, stopping evaluation")
            self.token.abort()
        elif key in display_config.escape_keys:
            self.token.cancel_video()
