from typing import Sequence
import math
import numpy as np
from scipy.spatial.distance import cdist, directed_hausdorff
from ..ingestion.models import Point


def euclidean_distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def path_length(points: Sequence[Point]) -> float:
    if len(points) < 2:
        return 0.0
    total = 0.0
    for i in range(1, len(points)):
        total += euclidean_distance(points[i - 1], points[i])
    return total


def to_array(points: Sequence[Point]) -> np.ndarray:
    return np.array([[p.x, p.y] for p in points], dtype=float).reshape(-1, 2)


def frechet_distance(a: Sequence[Point], b: Sequence[Point]) -> float:
    """
    Discrete Fréchet distance between two polylines.

    Fills the coupling table
        c(0,0) = d(0,0)
        c(i,0) = max(c(i-1,0), d(i,0))
        c(0,j) = max(c(0,j-1), d(0,j))
        c(i,j) = max(min(c(i-1,j), c(i-1,j-1), c(i,j-1)), d(i,j))
    once per (i, j), in dependency order. O(n*m) time and memory.
    """
    if not a or not b:
        return math.inf
    d = cdist(to_array(a), to_array(b))
    n, m = d.shape
    ca = np.empty((n, m), dtype=float)

    ca[0, 0] = d[0, 0]
    for i in range(1, n):
        ca[i, 0] = max(ca[i - 1, 0], d[i, 0])
    for j in range(1, m):
        ca[0, j] = max(ca[0, j - 1], d[0, j])
    for i in range(1, n):
        for j in range(1, m):
            ca[i, j] = max(min(ca[i - 1, j], ca[i - 1, j - 1], ca[i, j - 1]), d[i, j])

    return float(ca[n - 1, m - 1])


def hausdorff_distance(a: Sequence[Point], b: Sequence[Point]) -> float:
    """Symmetric Hausdorff distance: max of both directed distances."""
    if not a or not b:
        return math.inf
    u = to_array(a)
    v = to_array(b)
    return float(max(directed_hausdorff(u, v)[0], directed_hausdorff(v, u)[0]))
