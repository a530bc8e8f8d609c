"""Douglas-Peucker simplification over a flat lat/lng plane."""
from __future__ import annotations

import math
from typing import List, Sequence

import structlog

from placecore.models import Coordinate

LOGGER = structlog.get_logger(__name__)

# Degrees, roughly 7-11 m at mid latitudes.
DEFAULT_TOLERANCE = 0.0001


def perpendicular_distance(point: Coordinate, start: Coordinate, end: Coordinate) -> float:
    """Distance from `point` to the segment `start`-`end`, clamped to the ends."""
    px = point.latitude - start.latitude
    py = point.longitude - start.longitude
    dx = end.latitude - start.latitude
    dy = end.longitude - start.longitude

    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return math.hypot(px, py)

    t = (px * dx + py * dy) / length_sq
    if t < 0:
        cx, cy = start.latitude, start.longitude
    elif t > 1:
        cx, cy = end.latitude, end.longitude
    else:
        cx, cy = start.latitude + t * dx, start.longitude + t * dy
    return math.hypot(point.latitude - cx, point.longitude - cy)


def simplify(points: Sequence[Coordinate], tolerance: float = DEFAULT_TOLERANCE) -> List[Coordinate]:
    """Drop points that lie within `tolerance` of the simplified line.

    The first and last points always survive. Spans are processed from an
    explicit worklist rather than by recursion so long routes cannot exhaust
    the interpreter stack; the kept set matches the recursive formulation.
    """
    if len(points) <= 2:
        return list(points)

    tolerance = max(tolerance, 0.0)
    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    spans = [(0, len(points) - 1)]
    while spans:
        first, last = spans.pop()
        max_distance = 0.0
        max_index = first
        for index in range(first + 1, last):
            distance = perpendicular_distance(points[index], points[first], points[last])
            if distance > max_distance:
                max_distance = distance
                max_index = index
        if max_index != first and max_distance > tolerance:
            keep[max_index] = True
            spans.append((first, max_index))
            spans.append((max_index, last))

    simplified = [point for point, kept in zip(points, keep) if kept]
    LOGGER.debug(
        "polyline_simplified",
        original=len(points),
        simplified=len(simplified),
        reduction_pct=round((1 - len(simplified) / len(points)) * 100, 1),
    )
    return simplified
