"""
Ground-truth point labels for offline inspection.

Each line of a label file lists the hand-labelled animal positions of
one frame, e.g. ``[211, 88],[257, 76],[279, 60],[421, 66],[0]``.

Tokens are kept whole with their inner whitespace collapsed, so
``[211,  88]`` and ``[211, 88]`` count as the same point. Duplicates are
dropped per bracketed token, not per comma-separated piece.
"""

import logging
import re
from pathlib import Path
from typing import List, Tuple, Union


logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"\[[^\[\]]*\]")


def parse_label_line(line: str) -> List[str]:
    """Return the unique bracketed tokens of a line, in order of appearance."""
    tokens = (" ".join(token.split()) for token in _TOKEN_PATTERN.findall(line))
    return list(dict.fromkeys(tokens))


def load_labeled_points(path: Union[str, Path]) -> List[List[str]]:
    """
    Load a label file into per-line lists of unique point tokens.

    Args:
        path: Label file path

    Returns:
        One list per line; blank lines give an empty list
    """
    with open(path) as f:
        lines = f.read().splitlines()

    labeled = []
    for line in lines:
        tokens = parse_label_line(line)
        logger.info(f"{tokens}")
        labeled.append(tokens)

    return labeled


def to_points(tokens: List[str]) -> List[Tuple[int, int]]:
    """Convert ``[x, y]`` tokens to integer points, ignoring any other token."""
    points = []
    for token in tokens:
        parts = token.strip("[]").split(",")
        if len(parts) != 2:
            continue
        try:
            points.append((int(parts[0]), int(parts[1])))
        except ValueError:
            continue
    return points
