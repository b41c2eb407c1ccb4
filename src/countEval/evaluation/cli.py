"""
CLI commands for the evaluation framework.

Provides commands to:
- Run a batch accuracy evaluation of a model over groups of videos
- Inspect hand-labelled ground-truth point files
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from ..config import PipelineConfig, get_default_config
from ..exceptions import ModelInitializationError
from ..labels import load_labeled_points, to_points
from ..pipeline import BatchEvaluator, load_group_files, setup_logging
from .reporter import EvaluationReporter


logger = logging.getLogger(__name__)

EXIT_ABORTED = 130


def _parse_group(value: str) -> tuple:
    """Parse ``3=lists/group3.txt`` into ``(3, Path)``."""
    group, sep, path = value.partition("=")
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"Expected GROUP=FILE, got {value!r}")
    try:
        group_id = int(group)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Group must be an integer, got {group!r}") from None
    if group_id <= 0:
        raise argparse.ArgumentTypeError(f"Group must be positive, got {group_id}")
    return group_id, Path(path)


def add_run_parser(subparsers: argparse._SubParsersAction) -> None:
    """Add run subcommand to CLI."""
    parser = subparsers.add_parser(
        "run",
        help="Evaluate a detector over groups of videos",
        description="Score detections against known animal counts, frame by frame",
    )

    parser.add_argument(
        "model",
        type=Path,
        help="Path to the trained detector weights",
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Output base name; group N is saved to <output-stem>N.eval",
    )

    parser.add_argument(
        "-g", "--group",
        type=_parse_group,
        action="append",
        default=[],
        metavar="GROUP=FILE",
        help="Animal count and its video list file (repeatable)",
    )

    parser.add_argument(
        "--groups-file",
        type=Path,
        default=None,
        help="YAML mapping of animal count -> video list file",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="YAML pipeline configuration",
    )

    parser.add_argument(
        "--show",
        action="store_true",
        help="Show the live evaluation window (ESC skips a video, Shift+Q quits)",
    )

    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write .eval files",
    )

    parser.add_argument(
        "--no-resume",
        action="store_true",
        help="Re-run even if results already exist",
    )

    parser.add_argument(
        "--penalize-extra",
        action="store_true",
        help="Count extra detections against the frame score",
    )

    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Also save a JSON (.json) or Markdown (.md) run report",
    )

    parser.add_argument(
        "--details",
        action="store_true",
        help="Print a per-video table for every group",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored console output",
    )

    parser.set_defaults(func=run_batch_command)


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig.from_yaml(args.config) if args.config else get_default_config()
    settings = config.evaluation
    if args.show:
        settings.show_live_visualization = True
    if args.no_save:
        settings.persist_results = False
    if args.no_resume:
        settings.resume_if_complete = False
    if args.penalize_extra:
        settings.penalize_extra_detections = True
    return config


def _collect_groups(args: argparse.Namespace) -> Dict[int, Path]:
    groups: Dict[int, Path] = {}
    if args.groups_file:
        groups.update(load_group_files(args.groups_file))
    for group_id, path in args.group:
        groups[group_id] = path
    return groups


def run_batch_command(args: argparse.Namespace) -> int:
    """Execute run command."""
    try:
        config = _build_config(args)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Invalid configuration {args.config}: {e}")
        return 1

    setup_logging(config)

    try:
        groups = _collect_groups(args)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid group mapping {args.groups_file}: {e}")
        return 1

    if not groups:
        logger.error("No video groups given; use --group or --groups-file")
        return 1

    reporter = EvaluationReporter(use_colors=not args.no_color)
    evaluator = BatchEvaluator(config, reporter=reporter)

    try:
        run = evaluator.run(args.model, groups, args.output)
    except ModelInitializationError as e:
        logger.error(str(e))
        return 1

    if run.aborted:
        return EXIT_ABORTED

    if args.details:
        for group in run.groups.values():
            reporter.print_group_details(group)

    if args.report and not run.already_evaluated:
        if args.report.suffix.lower() == ".md":
            reporter.save_markdown(run, args.report)
        else:
            reporter.save_json(run, args.report)
        print(f"Saved report: {args.report}")

    return 0


def add_labels_parser(subparsers: argparse._SubParsersAction) -> None:
    """Add labels subcommand to CLI."""
    parser = subparsers.add_parser(
        "labels",
        help="Print the labelled points of a ground-truth file",
        description="Parse a [x, y],[x, y],... label file line by line",
    )

    parser.add_argument(
        "labels_file",
        type=Path,
        help="Path to the label file",
    )

    parser.add_argument(
        "--points",
        action="store_true",
        help="Print integer (x, y) points instead of raw tokens",
    )

    parser.set_defaults(func=run_labels)


def run_labels(args: argparse.Namespace) -> int:
    """Execute labels command."""
    if not args.labels_file.exists():
        logger.error(f"Label file not found: {args.labels_file}")
        return 1

    for tokens in load_labeled_points(args.labels_file):
        print(to_points(tokens) if args.points else tokens)
    return 0


def setup_evaluation_cli(parser: argparse.ArgumentParser) -> None:
    """
    Set up evaluation CLI commands.

    Usage:
        parser = argparse.ArgumentParser()
        setup_evaluation_cli(parser)
    """
    subparsers = parser.add_subparsers(dest="command")
    add_run_parser(subparsers)
    add_labels_parser(subparsers)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="countEval",
        description="Detection count accuracy evaluation",
    )
    setup_evaluation_cli(parser)
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
