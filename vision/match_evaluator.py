"""Turn raw match scores into screen rectangles and pointer coordinates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from vision.template_matcher import MatchResult

ABSOLUTE_POINTER_MAX = 65535


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class MatchRectangle:
    left: int
    top: int
    width: int
    height: int

    @property
    def center(self) -> Point:
        """Truncating integer midpoint of the rectangle."""
        return Point(self.left + self.width // 2, self.top + self.height // 2)


def is_found(result: MatchResult, threshold: float) -> bool:
    """A match counts only when its score is strictly above ``threshold``."""
    return result.best_score > threshold


def evaluate(result: MatchResult, threshold: float) -> Optional[MatchRectangle]:
    """Return the match rectangle, or None when the score does not clear ``threshold``."""
    if not is_found(result, threshold):
        return None
    left, top = result.best_location
    width, height = result.match_size
    return MatchRectangle(left=left, top=top, width=width, height=height)


def to_absolute(point: Point, screen_size: Tuple[int, int], *, legacy_integer_scaling: bool = False) -> Point:
    """Rescale a pixel coordinate into the 0-65535 absolute pointer space.

    ``legacy_integer_scaling`` reproduces the older ``x * (65535 // width)``
    arithmetic, which truncates the ratio and drifts left/up on resolutions
    that do not divide 65535.
    """
    width, height = screen_size
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid screen size: {screen_size}")
    if legacy_integer_scaling:
        return Point(
            point.x * (ABSOLUTE_POINTER_MAX // width),
            point.y * (ABSOLUTE_POINTER_MAX // height),
        )
    return Point(
        round(point.x * ABSOLUTE_POINTER_MAX / width),
        round(point.y * ABSOLUTE_POINTER_MAX / height),
    )
