"""
Evaluation reporter for generating human-readable and machine-readable reports.

Supports:
- Console output with colored formatting
- JSON export for programmatic analysis
- Markdown reports for documentation
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

from .analyzer import format_elapsed
from .metrics import GroupResult, RunResult, VideoResult


logger = logging.getLogger(__name__)


class EvaluationReporter:
    """Generate evaluation reports in various formats."""

    # ANSI color codes
    COLORS = {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
    }

    def __init__(self, use_colors: bool = True):
        """
        Initialize reporter.

        Args:
            use_colors: Whether to use ANSI colors in console output
        """
        self.use_colors = use_colors and sys.stdout.isatty()

    def _color(self, text: str, color: str) -> str:
        """Apply ANSI color to text if colors enabled."""
        if not self.use_colors:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def _score_color(self, score: Optional[float]) -> str:
        """Get color for an accuracy value in [0, 1]."""
        if score is None or score < 0.6:
            return "red"
        elif score < 0.8:
            return "yellow"
        return "green"

    def _format_score(self, score: Optional[float], digits: int = 4) -> str:
        text = "n/a" if score is None else f"{score:.{digits}f}"
        return self._color(text, self._score_color(score))

    def print_group_header(self, group_id: int, file: TextIO = sys.stdout) -> None:
        print(file=file)
        print(self._color(f"Group {group_id} videos", "bold"), file=file)

    def print_video_summary(self, result: VideoResult, file: TextIO = sys.stdout) -> None:
        """Print the average accuracy of one evaluated video."""
        suffix = ""
        if result.cancelled:
            suffix = f" (stopped after {result.frames_processed} of {result.total_frames} frames)"
        print(
            f"Average accuracy: {self._format_score(result.average, digits=5)}{suffix}",
            file=file,
        )

    def print_run_summary(self, run: RunResult, file: TextIO = sys.stdout) -> None:
        """
        Print per-group averages of a run.

        Args:
            run: Completed run
            file: Output file (default: stdout)
        """
        if run.already_evaluated:
            print("Model already evaluated for current group", file=file)
            return

        print(file=file)
        for group_id, group in run.groups.items():
            print(
                f"Average accuracy on groups of {group_id}: {self._format_score(group.mean)}"
                + (" (resumed)" if group.resumed else ""),
                file=file,
            )

        if len(run.groups) > 1:
            print(f"Overall average accuracy: {self._format_score(run.mean)}", file=file)
        print(file=file)

    def print_group_details(self, group: GroupResult, file: TextIO = sys.stdout) -> None:
        """Print one row per video plus the skipped and failed inputs."""
        print(self._color(f"GROUP {group.group_id}", "cyan"), file=file)
        print("-" * 72, file=file)

        for result in group.video_results:
            name = result.descriptor.path.name[:32]
            print(
                f"  {name:<32} {result.average:>8.4f} "
                f"{result.frames_processed:>6}/{result.total_frames:<6} "
                f"{format_elapsed(result.elapsed_seconds):>12}",
                file=file,
            )

        for skipped in group.skipped_lines:
            print(f"  skipped line: {skipped.line!r} ({skipped.reason})", file=file)
        for path in group.failed_videos:
            print(f"  failed video: {path}", file=file)

        summary = group.summary
        if summary.count:
            print(
                f"  mean {summary.mean:.4f}  std {summary.std:.4f}  "
                f"min {summary.minimum:.4f}  max {summary.maximum:.4f}",
                file=file,
            )
        print(file=file)

    def save_json(
        self,
        run: RunResult,
        output_path: Path,
        pretty: bool = True,
    ) -> None:
        """
        Save run results as JSON.

        Args:
            run: Results to save
            output_path: Output file path
            pretty: Whether to format JSON nicely
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            json.dump(run.to_dict(), f, indent=2 if pretty else None)

        logger.info(f"Saved evaluation JSON to {output_path}")

    def save_markdown(self, run: RunResult, output_path: Path) -> None:
        """
        Save run results as a Markdown report.

        Args:
            run: Results to save
            output_path: Output file path
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            f.write("# Detection Accuracy Report\n\n")
            f.write(f"**Output base:** {run.output_base}  \n")
            f.write(f"**Date:** {run.timestamp.strftime('%Y-%m-%d %H:%M:%S')}  \n\n")

            f.write("## Groups\n\n")
            f.write("| Animals | Videos | Mean | Std | Min | Max |\n")
            f.write("|---------|--------|------|-----|-----|-----|\n")
            for group_id, group in run.groups.items():
                s = group.summary
                if s.count:
                    f.write(
                        f"| {group_id} | {s.count} | {s.mean:.4f} | {s.std:.4f} | "
                        f"{s.minimum:.4f} | {s.maximum:.4f} |\n"
                    )
                else:
                    f.write(f"| {group_id} | 0 | n/a | n/a | n/a | n/a |\n")
            f.write("\n")

            for group_id, group in run.groups.items():
                if not group.video_results:
                    continue
                f.write(f"### {group_id} animals\n\n")
                f.write("| Video | Average | Frames |\n")
                f.write("|-------|---------|--------|\n")
                for result in group.video_results:
                    f.write(
                        f"| {result.descriptor.path.name} | {result.average:.5f} | "
                        f"{result.frames_processed}/{result.total_frames} |\n"
                    )
                f.write("\n")

        logger.info(f"Saved evaluation report to {output_path}")
