from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

from domain.models import Point, RouteStyle

DEFAULT_SIMPLIFY_TOLERANCE = 3.0


def distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def angle_difference(v1: Tuple[float, float], v2: Tuple[float, float]) -> float:
    """Angle in degrees (0-180) between two direction vectors.

    A zero-length vector has no direction and is treated as no turn.
    """

    if (v1[0] == 0 and v1[1] == 0) or (v2[0] == 0 and v2[1] == 0):
        return 0.0
    a1 = math.atan2(v1[1], v1[0])
    a2 = math.atan2(v2[1], v2[0])
    diff = abs(math.degrees(a2 - a1)) % 360.0
    return 360.0 - diff if diff > 180.0 else diff


def turn_angle(a: Point, b: Point, c: Point) -> float:
    """Direction change at *b* when travelling a -> b -> c."""

    return angle_difference((b.x - a.x, b.y - a.y), (c.x - b.x, c.y - b.y))


def translate_points(points: Iterable[Point], dx: float, dy: float) -> List[Point]:
    return [point.offset(dx, dy) for point in points]


def simplify_points(
    points: Sequence[Point], tolerance: float = DEFAULT_SIMPLIFY_TOLERANCE
) -> List[Point]:
    """Greedy single-pass thinning of a sampled path.

    Keeps the first and last point and any intermediate point further than
    *tolerance* from the last retained point. There is no perpendicular
    distance test, so sharp but short wiggles can survive.
    """

    if len(points) <= 2:
        return list(points)
    kept = [points[0]]
    for point in points[1:-1]:
        if distance(kept[-1], point) > tolerance:
            kept.append(point)
    kept.append(points[-1])
    return kept


def _intersect_los(p0: Point, p1: Point, los_y: float) -> Point:
    t = (los_y - p0.y) / (p1.y - p0.y)
    return Point(x=p0.x + (p1.x - p0.x) * t, y=los_y)


def _is_below(point: Point, los_y: float) -> bool:
    # Canvas y grows downward: the offense backfield sits below the LOS.
    return point.y >= los_y


def split_at_los(points: Sequence[Point], los_y: float) -> Tuple[List[Point], List[Point]]:
    """Split a path into its below-LOS and above-LOS subsequences.

    Each crossing contributes the interpolated intersection to both sides so
    the two sub-paths meet exactly on the line.
    """

    below: List[Point] = []
    above: List[Point] = []
    previous: Point | None = None
    for point in points:
        point_below = _is_below(point, los_y)
        if previous is not None and _is_below(previous, los_y) != point_below:
            crossing = _intersect_los(previous, point, los_y)
            for side in (below, above):
                if not side or side[-1] != crossing:
                    side.append(crossing)
        target = below if point_below else above
        if not target or target[-1] != point:
            target.append(point)
        previous = point
    return below, above


def crosses_los(points: Sequence[Point], los_y: float) -> bool:
    return any(
        _is_below(a, los_y) != _is_below(b, los_y) for a, b in zip(points, points[1:])
    )


def _fmt(value: float) -> str:
    return f"{round(value, 2):g}"


def straight_path(points: Sequence[Point]) -> str:
    if len(points) < 2:
        return ""
    head = f"M {_fmt(points[0].x)} {_fmt(points[0].y)}"
    return " ".join([head] + [f"L {_fmt(p.x)} {_fmt(p.y)}" for p in points[1:]])


def curved_path(points: Sequence[Point]) -> str:
    """Quadratic chain: each segment bends through the midpoint of its leg."""

    if len(points) < 2:
        return ""
    parts = [f"M {_fmt(points[0].x)} {_fmt(points[0].y)}"]
    for index in range(1, len(points)):
        prev = points[index - 1]
        curr = points[index]
        if index + 1 < len(points):
            cx = prev.x + (curr.x - prev.x) * 0.5
            cy = prev.y + (curr.y - prev.y) * 0.5
            parts.append(f"Q {_fmt(cx)} {_fmt(cy)} {_fmt(curr.x)} {_fmt(curr.y)}")
        else:
            parts.append(f"L {_fmt(curr.x)} {_fmt(curr.y)}")
    return " ".join(parts)


def route_path(points: Sequence[Point], style: RouteStyle) -> str:
    if style == RouteStyle.CURVED:
        return curved_path(points)
    return straight_path(points)


def arrow_angle(points: Sequence[Point]) -> float:
    """Heading in degrees of the final segment, for orienting an arrowhead."""

    if len(points) < 2:
        return 0.0
    last, before = points[-1], points[-2]
    return math.degrees(math.atan2(last.y - before.y, last.x - before.x))
