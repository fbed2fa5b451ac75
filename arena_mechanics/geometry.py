"""Oriented rectangles and the separating-axis overlap test."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import List, Tuple

Point2D = Tuple[float, float]


@dataclass(frozen=True)
class OrientedRect:
    """Rectangle given by its center, half extents and rotation in degrees."""

    center_x: float
    center_y: float
    half_width: float
    half_height: float
    angle_deg: float = 0.0

    def corners(self) -> List[Point2D]:
        return rect_corners(self)

    def axes(self) -> List[Point2D]:
        rad = math.radians(self.angle_deg)
        return [
            (math.cos(rad), math.sin(rad)),
            (-math.sin(rad), math.cos(rad)),
        ]

    def moved_to(self, x: float, y: float) -> "OrientedRect":
        return OrientedRect(x, y, self.half_width, self.half_height, self.angle_deg)


def rect_corners(rect: OrientedRect) -> List[Point2D]:
    c = math.cos(math.radians(rect.angle_deg))
    s = math.sin(math.radians(rect.angle_deg))
    cx, cy = rect.center_x, rect.center_y
    hw, hh = rect.half_width, rect.half_height
    return [
        (cx + hw * c - hh * s, cy + hw * s + hh * c),
        (cx - hw * c - hh * s, cy - hw * s + hh * c),
        (cx - hw * c + hh * s, cy - hw * s - hh * c),
        (cx + hw * c + hh * s, cy + hw * s - hh * c),
    ]


def check_oriented_overlap(a: OrientedRect, b: OrientedRect) -> bool:
    """SAT over the two face normals of each rectangle.

    Touching rectangles (projections sharing an endpoint) count as overlapping.
    """
    corners_a = rect_corners(a)
    corners_b = rect_corners(b)
    for axis in a.axes() + b.axes():
        min_a, max_a = _project(axis, corners_a)
        min_b, max_b = _project(axis, corners_b)
        if max_a < min_b or max_b < min_a:
            return False
    return True


def _project(axis: Point2D, corners: List[Point2D]) -> Tuple[float, float]:
    ax, ay = axis
    dots = [px * ax + py * ay for px, py in corners]
    return min(dots), max(dots)


def distance_between(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x1 - x2, y1 - y2)


def normalize_deg(deg: float) -> float:
    """Wrap an unbounded heading into [0, 360) for display."""
    return ((deg % 360.0) + 360.0) % 360.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    # Step and burst counts round .5 upward so 22.5 sub-steps become 23.
    return int(math.floor(value + 0.5))


def heading_vector(heading_deg: float) -> Point2D:
    rad = math.radians(heading_deg)
    return (math.cos(rad), math.sin(rad))


__all__ = [
    "Point2D",
    "OrientedRect",
    "rect_corners",
    "check_oriented_overlap",
    "distance_between",
    "normalize_deg",
    "clamp",
    "round_half_up",
    "heading_vector",
]
