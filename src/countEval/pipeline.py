"""
Batch orchestration of detection accuracy evaluation.

Videos are organised in groups keyed by the number of animals they
contain; each group is listed in its own descriptor file. The batch
evaluator runs the detector over every video of every group and writes
one ``.eval`` file of per-video averages per group, so an interrupted
run can be resumed without redoing finished groups.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Union

import yaml

from .config import PipelineConfig, get_default_config
from .descriptors import SkippedLine, parse_descriptor, read_descriptor_lines
from .detection import BaseDetector, YoloDetector
from .evaluation import (
    CancellationToken,
    EvaluationReporter,
    GroupResult,
    RunResult,
    VideoEvaluator,
)
from .evaluation.frame_loop import Display
from .evaluation.video import SourceFactory
from .exceptions import ModelInitializationError, SourceOpenError
from .io import read_values, write_values


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
DetectorFactory = Callable[[Path, PipelineConfig], BaseDetector]


def _load_yolo(model_path: Path, config: PipelineConfig) -> BaseDetector:
    return YoloDetector(model_path, config.detector)


def group_output_path(output_base: PathLike, group_id: int, extension: str = ".eval") -> Path:
    """``results/run.dat`` + group 3 -> ``results/run3.eval``."""
    output_base = Path(output_base)
    return output_base.with_name(f"{output_base.stem}{group_id}{extension}")


def setup_logging(config: PipelineConfig) -> None:
    """Configure logging based on config."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            *(
                [logging.FileHandler(config.log_file)]
                if config.log_file else []
            )
        ]
    )


class BatchEvaluator:
    """
    Evaluates a detector over groups of videos with known animal counts.

    Args:
        config: Pipeline configuration. Uses defaults if None.
        detector_factory: Builds the detector from a model path
            (default: ultralytics YOLO)
        source_factory: Builds a video source for a path
        display_factory: Builds the live display
        reporter: Console/file reporter

    Example:
        >>> evaluator = BatchEvaluator()
        >>> run = evaluator.run(
        ...     "models/best.pt",
        ...     {3: "lists/group3.txt", 5: "lists/group5.txt"},
        ...     "results/yolo.dat",
        ... )
        >>> for group_id, group in run.groups.items():
        ...     print(group_id, group.mean)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        detector_factory: Optional[DetectorFactory] = None,
        source_factory: Optional[SourceFactory] = None,
        display_factory: Optional[Callable[[], Display]] = None,
        reporter: Optional[EvaluationReporter] = None,
    ):
        self._config = config or get_default_config()
        self._detector_factory = detector_factory or _load_yolo
        self._source_factory = source_factory
        self._display_factory = display_factory
        self.reporter = reporter or EvaluationReporter()
        self.token = CancellationToken()

    @property
    def config(self) -> PipelineConfig:
        """Get the pipeline configuration."""
        return self._config

    def _output_path(self, output_base: Path, group_id: int) -> Path:
        return group_output_path(output_base, group_id, self._config.evaluation.output_extension)

    def is_already_evaluated(self, group_files: Mapping[int, PathLike], output_base: PathLike) -> bool:
        """True if the run's output base or its first group's artifact exists."""
        output_base = Path(output_base)
        if output_base.exists():
            return True

        first_group = next(iter(group_files), None)
        return first_group is not None and self._output_path(output_base, first_group).exists()

    def _load_detector(self, model_path: Path) -> BaseDetector:
        logger.info(f"Initializing detector from {model_path}...")
        try:
            return self._detector_factory(model_path, self._config)
        except ModelInitializationError:
            raise
        except Exception as e:
            raise ModelInitializationError(f"Failed to load model {model_path}: {e}") from e

    def run(
        self,
        model_path: PathLike,
        group_files: Mapping[int, PathLike],
        output_base: PathLike,
    ) -> RunResult:
        """
        Evaluate the model over all groups.

        Args:
            model_path: Detector weights
            group_files: Animal count -> descriptor file, processed in mapping order
            output_base: Base name for the per-group ``.eval`` files

        Raises:
            ModelInitializationError: if the detector cannot be constructed

        Returns:
            RunResult; ``already_evaluated`` or ``aborted`` flag early exits
        """
        model_path = Path(model_path)
        output_base = Path(output_base)
        run = RunResult(output_base=output_base)
        settings = self._config.evaluation

        if not group_files:
            logger.warning("No video groups to evaluate")
            return run

        if settings.resume_if_complete and self.is_already_evaluated(group_files, output_base):
            run.already_evaluated = True
            self.reporter.print_run_summary(run)
            return run

        detector = self._load_detector(model_path)
        self.token.reset()
        evaluator = VideoEvaluator(
            detector,
            self._config,
            source_factory=self._source_factory,
            display_factory=self._display_factory,
            token=self.token,
        )

        for group_id, descriptor_file in group_files.items():
            group = self._evaluate_group(evaluator, group_id, Path(descriptor_file), output_base)
            run.groups[group_id] = group

            if self.token.abort_requested:
                logger.warning("Evaluation aborted by user; remaining groups skipped")
                run.aborted = True
                return run

        self.reporter.print_run_summary(run)
        return run

    def _evaluate_group(
        self,
        evaluator: VideoEvaluator,
        group_id: int,
        descriptor_file: Path,
        output_base: Path,
    ) -> GroupResult:
        settings = self._config.evaluation
        group = GroupResult(group_id=group_id)
        output_path = self._output_path(output_base, group_id)

        if settings.resume_if_complete and output_path.exists():
            try:
                group.resumed_averages = read_values(output_path)
            except (OSError, ValueError) as e:
                logger.error(f"Cannot load results of group {group_id} from {output_path} ({e})")
                return group
            group.resumed = True
            logger.info(f"Group {group_id} already evaluated, loaded {output_path}")
            return group

        try:
            lines = list(read_descriptor_lines(descriptor_file))
        except (OSError, ValueError) as e:
            logger.error(f"Cannot read video list for group {group_id}: {descriptor_file} ({e})")
            return group

        self.reporter.print_group_header(group_id)

        for index, line in enumerate(lines, 1):
            descriptor = parse_descriptor(line)
            if isinstance(descriptor, SkippedLine):
                logger.warning(
                    f"Skipping invalid video path or incorrectly formatted line: "
                    f"'{descriptor.line}' ({descriptor.reason})"
                )
                group.skipped_lines.append(descriptor)
                continue

            logger.info(f"Video {index} of {len(lines)}: {descriptor.path}")

            try:
                result = evaluator.evaluate(descriptor)
            except SourceOpenError as e:
                logger.warning(f"Skipping video {descriptor.path}: {e}")
                group.failed_videos.append(descriptor.path)
                continue
            except Exception as e:
                logger.error(f"Failed to evaluate {descriptor.path}: {e}")
                group.failed_videos.append(descriptor.path)
                continue

            if result.aborted:
                return group

            group.video_results.append(result)
            self.reporter.print_video_summary(result)
            logger.info(
                f"Group {group_id}: {len(group.video_results)} videos evaluated, "
                f"running average {group.mean:.5f}"
            )

        if settings.persist_results:
            if group.video_results:
                group.persisted_to = write_values(
                    group.averages,
                    output_path,
                    separator="\n",
                    append=settings.append_results,
                )
            else:
                logger.warning(f"Group {group_id} has no evaluated videos; nothing saved")

        return group


def run_batch(
    model_path: PathLike,
    group_files: Mapping[int, PathLike],
    output_base: PathLike,
    config: Optional[PipelineConfig] = None,
    configure_logging: bool = True,
) -> RunResult:
    """
    Convenience function to run a batch evaluation.

    Args:
        model_path: Detector weights
        group_files: Animal count -> descriptor file
        output_base: Base name for the per-group ``.eval`` files
        config: Pipeline configuration
        configure_logging: Whether to call ``setup_logging`` first

    Returns:
        RunResult
    """
    config = config or get_default_config()
    if configure_logging:
        setup_logging(config)
    return BatchEvaluator(config).run(model_path, group_files, output_base)


def load_group_files(path: PathLike) -> Dict[int, Path]:
    """
    Load a YAML mapping of animal count -> descriptor file.

    Relative descriptor paths are resolved against the mapping file's directory.
    """
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping of group -> file in {path}")

    groups: Dict[int, Path] = {}
    for key, value in data.items():
        group_id = int(key)
        if group_id <= 0:
            raise ValueError(f"Group identifiers must be positive, got {group_id}")
        descriptor_file = Path(value)
        if not descriptor_file.is_absolute():
            descriptor_file = path.parent / descriptor_file
        groups[group_id] = descriptor_file
    return groups
