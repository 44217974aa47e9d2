"""
Stroke-path scoring: how closely a traced stroke follows the authored guide.
"""
import logging
import math
from typing import Dict, Sequence
from pydantic import BaseModel
from ..ingestion.models import Point, StrokePathRubric
from ..stroke_engine.resample import resample
from ..stroke_engine.metrics import frechet_distance, hausdorff_distance, path_length
from .rules import DEFAULT_STROKE_RUBRIC

logger = logging.getLogger("stroke_path")


class StrokePathResult(BaseModel):
    passed: bool
    score: float
    stars: int
    distance: float
    metrics: Dict[str, float] = {}


def stars_for_distance(distance: float, thresholds: Sequence[float]) -> int:
    t3, t2, t1 = thresholds  # strictest to loosest
    if distance <= t3:
        return 3
    if distance <= t2:
        return 2
    if distance <= t1:
        return 1
    return 0


def normalize_distance(distance: float, guide_length: float) -> float:
    return max(0.0, 1.0 - distance / max(guide_length, 1.0))


def shape_distance(guide: Sequence[Point], attempt: Sequence[Point]) -> float:
    """Fréchet distance, falling back to symmetric Hausdorff on numeric failure."""
    distance = frechet_distance(guide, attempt)
    if not math.isfinite(distance) or distance < 0:
        logger.warning("Frechet distance unusable (%s); using Hausdorff", distance)
        distance = hausdorff_distance(guide, attempt)
    return distance


def evaluate_stroke_path(
    guide: Sequence[Point],
    attempt: Sequence[Point],
    rubric: StrokePathRubric = DEFAULT_STROKE_RUBRIC,
) -> StrokePathResult:
    """
    Scores an attempt against a guide.

    Both paths are resampled to `rubric.resample_points` before comparison.
    `passed` and `stars` come from separate thresholds on the same distance,
    so an attempt can fail while still earning a star.
    """
    n = rubric.resample_points
    if not guide or not attempt:
        return StrokePathResult(
            passed=False,
            score=0.0,
            stars=0,
            distance=math.inf,
            metrics={"resample_points": n},
        )

    g = resample(guide, n)
    a = resample(attempt, n)
    distance = shape_distance(g, a)

    guide_length = path_length(guide)
    score = normalize_distance(distance, guide_length) if math.isfinite(distance) else 0.0

    return StrokePathResult(
        passed=distance <= rubric.max_distance_pass,
        score=score,
        stars=stars_for_distance(distance, rubric.star_thresholds),
        distance=distance,
        metrics={"distance": distance, "guide_length": guide_length, "resample_points": n},
    )
