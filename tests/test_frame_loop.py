"""Tests for the per-video frame evaluation loop."""

import pytest

from conftest import FakeDetector, FakeDisplay, FakeVideoSource, touch_videos
from countEval.config import ESCAPE_KEY
from countEval.descriptors import CropRegion, VideoDescriptor
from countEval.evaluation import CancellationToken, FrameEvaluationLoop, LoopState
from countEval.exceptions import SourceOpenError


@pytest.fixture
def descriptor(video_dir):
    (path,) = touch_videos(video_dir, "clip.mp4")
    return VideoDescriptor(path=path, expected_count=4, crop=CropRegion(0, 0, 32, 24))


def make_loop(config, detector, display=None, token=None):
    factory = (lambda: display) if display is not None else None
    return FrameEvaluationLoop(detector, config, display_factory=factory, token=token)


class TestExhaustion:
    """Running a video to the end."""

    def test_one_score_per_frame(self, config, detector, descriptor):
        source = FakeVideoSource(descriptor.path, [4, 2, 0, 6]).open()
        outcome = make_loop(config, detector).run(source, descriptor)

        assert outcome.scores == [1.0, 0.5, 0.0, 1.0]
        assert outcome.state is LoopState.EXHAUSTED
        assert outcome.total_frames == 4
        assert detector.calls == 4

    def test_source_released(self, config, detector, descriptor):
        source = FakeVideoSource(descriptor.path, [1]).open()
        loop = make_loop(config, detector)
        loop.run(source, descriptor)

        assert source.closed
        assert loop.state is LoopState.CLOSED

    def test_empty_video(self, config, detector, descriptor):
        source = FakeVideoSource(descriptor.path, []).open()
        outcome = make_loop(config, detector).run(source, descriptor)

        assert outcome.scores == []
        assert outcome.state is LoopState.EXHAUSTED

    def test_progress_reported(self, config, detector, descriptor):
        progress = []
        source = FakeVideoSource(descriptor.path, [1, 1, 1]).open()
        make_loop(config, detector).run(
            source, descriptor, on_progress=lambda done, total: progress.append((done, total))
        )

        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_extra_detections_penalized_when_enabled(self, config, detector, descriptor):
        config.evaluation.penalize_extra_detections = True
        source = FakeVideoSource(descriptor.path, [6]).open()
        outcome = make_loop(config, detector).run(source, descriptor)

        assert outcome.scores == [0.5]


class TestLiveDisplay:
    """Visualization and key handling."""

    def test_display_unused_when_disabled(self, config, detector, descriptor):
        display = FakeDisplay()
        source = FakeVideoSource(descriptor.path, [1, 1]).open()
        make_loop(config, detector, display).run(source, descriptor)

        assert display.shown == 0

    def test_every_frame_shown(self, config, detector, descriptor):
        config.evaluation.show_live_visualization = True
        display = FakeDisplay()
        source = FakeVideoSource(descriptor.path, [1, 2, 3]).open()
        make_loop(config, detector, display).run(source, descriptor)

        assert display.shown == 3
        assert display.closed

    def test_escape_cancels_current_video(self, config, detector, descriptor):
        config.evaluation.show_live_visualization = True
        display = FakeDisplay(keys=[-1, ESCAPE_KEY])
        source = FakeVideoSource(descriptor.path, [4, 2, 4, 4, 4]).open()
        token = CancellationToken()
        outcome = make_loop(config, detector, display, token).run(source, descriptor)

        assert outcome.state is LoopState.CANCELLED
        assert outcome.scores == [1.0, 0.5]
        assert display.closed and source.closed
        assert not token.abort_requested

    def test_quit_key_aborts(self, config, detector, descriptor):
        config.evaluation.show_live_visualization = True
        display = FakeDisplay(keys=[ord("Q")])
        source = FakeVideoSource(descriptor.path, [4, 4, 4]).open()
        token = CancellationToken()
        outcome = make_loop(config, detector, display, token).run(source, descriptor)

        assert outcome.state is LoopState.ABORTED
        assert outcome.frames_processed == 1
        assert token.abort_requested
        assert display.closed and source.closed

    def test_lowercase_q_is_ignored(self, config, detector, descriptor):
        config.evaluation.show_live_visualization = True
        display = FakeDisplay(keys=[ord("q")])
        source = FakeVideoSource(descriptor.path, [4, 4]).open()
        outcome = make_loop(config, detector, display).run(source, descriptor)

        assert outcome.state is LoopState.EXHAUSTED

    def test_cancel_is_cleared_for_next_video(self, config, detector, descriptor):
        token = CancellationToken()
        token.cancel_video()
        source = FakeVideoSource(descriptor.path, [4, 4]).open()
        outcome = make_loop(config, detector, token=token).run(source, descriptor)

        assert outcome.state is LoopState.EXHAUSTED
        assert outcome.frames_processed == 2


class TestFailures:
    """Resources are released when a frame fails."""

    def test_detector_error_releases_resources(self, config, descriptor):
        class BrokenDetector(FakeDetector):
            def detect(self, frame):
                raise RuntimeError("inference failed")

        config.evaluation.show_live_visualization = True
        display = FakeDisplay()
        source = FakeVideoSource(descriptor.path, [1]).open()

        with pytest.raises(RuntimeError):
            make_loop(config, BrokenDetector(), display).run(source, descriptor)

        assert source.closed
        assert display.closed

    def test_crop_outside_frame(self, config, detector, video_dir):
        (path,) = touch_videos(video_dir, "offset.mp4")
        descriptor = VideoDescriptor(path=path, expected_count=1, crop=CropRegion(500, 500, 10, 10))
        source = FakeVideoSource(path, [1]).open()

        with pytest.raises(SourceOpenError):
            make_loop(config, detector).run(source, descriptor)
        assert source.closed


def test_token_reset_clears_abort():
    token = CancellationToken()
    token.cancel_video()
    token.abort()

    token.reset()

    assert not token.video_cancelled
    assert not token.abort_requested
