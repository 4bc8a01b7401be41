"""Screen-space geometry: points, rectangles and relative direction."""

import math
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import RecordModel


class Point(RecordModel):
    """A position in screen coordinates."""

    x: float = 0.0
    y: float = 0.0

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


class Rect(RecordModel):
    """Axis-aligned rectangle in screen coordinates (origin + size)."""

    x: float = 0.0
    y: float = 0.0
    width: float = Field(default=0.0, ge=0)
    height: float = Field(default=0.0, ge=0)

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.width / 2, y=self.y + self.height / 2)

    def contains(self, other: "Rect") -> bool:
        """True if ``other`` lies entirely inside this rect (edges inclusive)."""
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.max_x <= self.max_x
            and other.max_y <= self.max_y
        )

    def contains_point(self, point: Point) -> bool:
        return self.x <= point.x <= self.max_x and self.y <= point.y <= self.max_y

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Overlapping region, or None when the rects only touch or are apart."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.max_x, other.max_x)
        bottom = min(self.max_y, other.max_y)
        if right <= left or bottom <= top:
            return None
        return Rect(x=left, y=top, width=right - left, height=bottom - top)

    def overlap_area(self, other: "Rect") -> float:
        overlap = self.intersection(other)
        return overlap.area if overlap else 0.0


class SpatialRelation(str, Enum):
    """Where one element sits relative to another."""

    ABOVE = "above"
    BELOW = "below"
    LEFT_OF = "leftOf"
    RIGHT_OF = "rightOf"
    ABOVE_LEFT = "aboveLeft"
    ABOVE_RIGHT = "aboveRight"
    BELOW_LEFT = "belowLeft"
    BELOW_RIGHT = "belowRight"


def spatial_relation(origin: Rect, other: Rect) -> SpatialRelation:
    """
    Direction of ``other``'s center as seen from ``origin``'s center.

    Screen coordinates grow downwards. An axis dominates when its delta is
    more than twice the other one; otherwise the relation is diagonal.
    """
    start, end = origin.center, other.center
    dx = end.x - start.x
    dy = end.y - start.y

    if abs(dx) > abs(dy) * 2:
        return SpatialRelation.RIGHT_OF if dx > 0 else SpatialRelation.LEFT_OF
    if abs(dy) > abs(dx) * 2:
        return SpatialRelation.BELOW if dy > 0 else SpatialRelation.ABOVE

    if dx > 0 and dy > 0:
        return SpatialRelation.BELOW_RIGHT
    if dx > 0 and dy < 0:
        return SpatialRelation.ABOVE_RIGHT
    if dx < 0 and dy > 0:
        return SpatialRelation.BELOW_LEFT
    return SpatialRelation.ABOVE_LEFT
