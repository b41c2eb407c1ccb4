"""
Video descriptor parsing.

A descriptor file lists one video per line:

    /videos/clip1.mp4,5,230 10 720 720

i.e. the video path, the number of animals in the video and the crop
rectangle ``x y width height`` applied to every frame before inference.
Bad lines are never fatal: ``parse_descriptor`` turns them into a
``SkippedLine`` so the batch can carry on with the next one.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, NamedTuple, Union

import numpy as np

from .exceptions import MalformedDescriptor


class CropRegion(NamedTuple):
    """Axis-aligned crop rectangle in pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def apply(self, frame: np.ndarray) -> np.ndarray:
        """Return the view of ``frame`` inside this region (clipped to the frame)."""
        return frame[self.y:self.y + self.height, self.x:self.x + self.width]

    def __str__(self) -> str:
        return f"{self.x} {self.y} {self.width} {self.height}"


@dataclass(frozen=True)
class VideoDescriptor:
    """One video to evaluate, with its ground-truth animal count."""

    path: Path
    expected_count: int
    crop: CropRegion

    @classmethod
    def from_line(cls, line: str) -> "VideoDescriptor":
        """
        Strictly decode a descriptor line.

        Raises:
            MalformedDescriptor: if any field is missing or invalid, or the
                video file does not exist.
        """
        fields = line.strip().split(",")
        if len(fields) < 2:
            raise MalformedDescriptor(line, "Expected at least 2 comma-separated fields")

        path = Path(fields[0].strip())

        try:
            expected_count = int(fields[1])
        except ValueError:
            raise MalformedDescriptor(line, f"Invalid animal count {fields[1]!r}") from None
        if expected_count <= 0:
            raise MalformedDescriptor(line, f"Animal count must be positive, got {expected_count}")

        if len(fields) < 3:
            raise MalformedDescriptor(line, "Missing crop dimensions")
        crop = _parse_crop(line, fields[2])

        if not path.is_file():
            raise MalformedDescriptor(line, f"Video file not found: {path}")

        return cls(path=path, expected_count=expected_count, crop=crop)

    def to_line(self) -> str:
        return f"{self.path},{self.expected_count},{self.crop}"


@dataclass(frozen=True)
class SkippedLine:
    """A descriptor line that was rejected, kept for diagnostics."""

    line: str
    reason: str


def _parse_crop(line: str, field: str) -> CropRegion:
    tokens = field.strip().strip('"').split()
    try:
        dims = [int(token) for token in tokens]
    except ValueError:
        raise MalformedDescriptor(line, f"Non-integer crop dimensions {field!r}") from None

    if len(dims) != 4:
        raise MalformedDescriptor(line, f"Expected 4 crop dimensions, got {len(dims)}")
    if any(d < 0 for d in dims):
        raise MalformedDescriptor(line, f"Crop dimensions must be non-negative: {dims}")

    return CropRegion(*dims)


def parse_descriptor(line: str) -> Union[VideoDescriptor, SkippedLine]:
    """
    Leniently decode a descriptor line.

    Never raises; a rejected line comes back as a ``SkippedLine``.
    """
    try:
        return VideoDescriptor.from_line(line)
    except MalformedDescriptor as e:
        return SkippedLine(line=line, reason=e.reason)


def read_descriptor_lines(path: Union[str, Path]) -> Iterator[str]:
    """Yield the non-blank, non-comment lines of a descriptor file."""
    with open(path, encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            yield line
