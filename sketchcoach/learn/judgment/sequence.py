from typing import List, Sequence
from ..ingestion.models import Point
from ..stroke_engine.metrics import euclidean_distance


def evaluate_dot_to_dot(taps: Sequence[Point], targets: Sequence[Point], tolerance_px: float = 12.0) -> bool:
    """
    Taps must hit the targets in order, each within `tolerance_px`.
    A different number of taps fails regardless of distances.
    """
    if len(taps) != len(targets):
        return False
    for tap, target in zip(taps, targets):
        if euclidean_distance(tap, target) > tolerance_px:
            return False
    return True


def evaluate_layer_order(order: List[str], target: List[str]) -> bool:
    if len(order) != len(target):
        return False
    return all(a == b for a, b in zip(order, target))
