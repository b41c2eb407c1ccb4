"""Tests for configuration module."""

import tempfile
from pathlib import Path

import pytest

from countEval.config import (
    ESCAPE_KEY,
    DetectorConfig,
    DisplayConfig,
    EvaluationConfig,
    PipelineConfig,
    VideoConfig,
)


class TestDetectorConfig:
    """Tests for DetectorConfig."""

    def test_default_values(self):
        config = DetectorConfig()
        assert config.device == "auto"
        assert config.confidence_threshold == 0.25
        assert config.image_size == 416

    def test_confidence_bounds(self):
        with pytest.raises(ValueError):
            DetectorConfig(confidence_threshold=1.5)
        with pytest.raises(ValueError):
            DetectorConfig(confidence_threshold=-0.1)

    def test_explicit_device_is_kept(self):
        assert DetectorConfig(device="cpu").resolve_device() == "cpu"


class TestVideoConfig:
    """Tests for VideoConfig."""

    def test_reads_whole_video_by_default(self):
        assert VideoConfig().max_frames is None

    def test_invalid_max_frames(self):
        with pytest.raises(ValueError):
            VideoConfig(max_frames=0)

    def test_supported_formats(self):
        assert ".mp4" in VideoConfig().supported_formats


class TestDisplayConfig:
    """Tests for DisplayConfig."""

    def test_default_keys(self):
        config = DisplayConfig()
        assert config.escape_keys == (ESCAPE_KEY,)
        assert config.abort_keys == (ord("Q"),)
        assert config.key_poll_ms == 10

    def test_overlapping_keys_rejected(self):
        with pytest.raises(ValueError):
            DisplayConfig(escape_keys=(27,), abort_keys=(27,))


class TestEvaluationConfig:
    """Tests for EvaluationConfig."""

    def test_default_switches(self):
        config = EvaluationConfig()
        assert config.persist_results is True
        assert config.show_live_visualization is False
        assert config.resume_if_complete is True
        assert config.penalize_extra_detections is False

    def test_extension_gets_dot(self):
        assert EvaluationConfig(output_extension="eval").output_extension == ".eval"


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_nested_configs(self):
        config = PipelineConfig()
        assert isinstance(config.detector, DetectorConfig)
        assert isinstance(config.video, VideoConfig)
        assert isinstance(config.display, DisplayConfig)
        assert isinstance(config.evaluation, EvaluationConfig)

    def test_yaml_roundtrip(self):
        config = PipelineConfig(
            detector=DetectorConfig(confidence_threshold=0.5),
            evaluation=EvaluationConfig(show_live_visualization=True, persist_results=False),
            display=DisplayConfig(abort_keys=(ord("x"),)),
        )

        with tempfile.TemporaryDirectory() as tmpdir:
            yaml_path = Path(tmpdir) / "config.yaml"
            config.to_yaml(yaml_path)

            loaded = PipelineConfig.from_yaml(yaml_path)
            assert loaded.detector.confidence_threshold == 0.5
            assert loaded.evaluation.show_live_visualization is True
            assert loaded.evaluation.persist_results is False
            assert loaded.display.abort_keys == (ord("x"),)

    def test_partial_dict(self):
        config = PipelineConfig.from_dict({"evaluation": {"resume_if_complete": False}})
        assert config.evaluation.resume_if_complete is False
        assert config.detector == DetectorConfig()
        assert config.log_level == "INFO"

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            PipelineConfig.from_dict({"evaluation": {"no_such_option": 1}})
