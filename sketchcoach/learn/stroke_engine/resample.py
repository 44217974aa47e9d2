from typing import List, Optional, Sequence
from ..ingestion.models import Point
from .metrics import euclidean_distance


def _lerp_optional(a: Optional[float], b: Optional[float], t: float) -> Optional[float]:
    if a is not None and b is not None:
        return a + (b - a) * t
    return a if a is not None else b


def resample(points: Sequence[Point], target_count: int = 128) -> List[Point]:
    """
    Resamples a polyline to exactly `target_count` points spaced evenly by arc length.

    The first and last input points are returned as-is at both ends. Pressure and
    timestamp are interpolated alongside x/y when both neighbours carry them.
    """
    if not points or target_count <= 0:
        return []
    if len(points) == 1 or target_count == 1:
        return [points[0]] * target_count

    # Cumulative distance table
    dists = [0.0]
    total_len = 0.0
    for i in range(1, len(points)):
        total_len += euclidean_distance(points[i - 1], points[i])
        dists.append(total_len)

    if total_len == 0:
        return [points[0]] * target_count

    step = total_len / (target_count - 1)
    new_points = [points[0]]

    # Cursor only ever moves forward
    j = 1
    for i in range(1, target_count - 1):
        target_dist = i * step
        while j < len(dists) and dists[j] < target_dist:
            j += 1

        if j >= len(dists):
            # Float error ran past the last segment
            new_points.append(points[-1])
            continue

        d0 = dists[j - 1]
        d1 = dists[j]
        t = 0.0 if d1 == d0 else (target_dist - d0) / (d1 - d0)
        p_start = points[j - 1]
        p_end = points[j]
        new_points.append(Point(
            x=p_start.x + (p_end.x - p_start.x) * t,
            y=p_start.y + (p_end.y - p_start.y) * t,
            p=_lerp_optional(p_start.p, p_end.p, t),
            t=_lerp_optional(p_start.t, p_end.t, t),
        ))

    new_points.append(points[-1])
    return new_points
