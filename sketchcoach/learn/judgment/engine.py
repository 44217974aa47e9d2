"""
Step judgment: routes an attempt to the evaluator that matches the step type
and turns the raw metric into an EvaluationResult with learner feedback.
"""
import logging
from typing import Any, Dict, List, Optional
import numpy as np
from pydantic import BaseModel, ValidationError
from ...utils import decode_data_url
from ..ingestion.models import (
    Attempt,
    AreaFillGuide,
    AreaFillRubric,
    DotToDotGuide,
    DotToDotRubric,
    EvaluationResult,
    Hint,
    LayerOrderGuide,
    StepSpec,
    StrokePathGuide,
    StrokePathRubric,
)
from .area_fill import evaluate_area_fill
from .rules import (
    AREA_FILL_STAR_COVERAGE,
    DEFAULT_FILL_TOLERANCE,
    MAX_HINT_TIER,
    NO_EVALUATION_MESSAGE,
    STEP_RULES_V1,
)
from .sequence import evaluate_dot_to_dot, evaluate_layer_order
from .stroke_path import evaluate_stroke_path

logger = logging.getLogger("judgment_engine")

GUIDE_MODELS = {
    "stroke-path": StrokePathGuide,
    "area-fill": AreaFillGuide,
    "dot-to-dot": DotToDotGuide,
    "layer-order": LayerOrderGuide,
}

RUBRIC_MODELS = {
    "stroke-path": StrokePathRubric,
    "area-fill": AreaFillRubric,
    "dot-to-dot": DotToDotRubric,
}


def _no_evaluation() -> EvaluationResult:
    return EvaluationResult(passed=False, score=0.0, stars=0, feedback=NO_EVALUATION_MESSAGE)


def _parse(model, data: Optional[Dict[str, Any]]):
    return model.model_validate(data or {})


def _format_issues(error: ValidationError) -> List[str]:
    issues = []
    for issue in error.errors():
        loc = ".".join(str(p) for p in issue["loc"])
        path = f' at "{loc}"' if loc else ""
        issues.append(f"{issue['msg']}{path}")
    return issues


def validate_step(data: Any) -> StepSpec:
    """
    Validates authored step data, including the guide and rubric shapes
    for its type. Raises ValueError listing every problem found.
    """
    try:
        step = StepSpec.model_validate(data)
    except ValidationError as e:
        raise ValueError("Step validation failed:\n- " + "\n- ".join(_format_issues(e))) from e

    issues: List[str] = []
    for field, models in (("guide", GUIDE_MODELS), ("rubric", RUBRIC_MODELS)):
        model = models.get(step.type)
        payload = getattr(step, field)
        if model is None or (payload is None and field == "rubric"):
            continue
        try:
            _parse(model, payload)
        except ValidationError as e:
            issues.extend(f"{msg} in {field}" for msg in _format_issues(e))

    if issues:
        raise ValueError("Step validation failed:\n- " + "\n- ".join(issues))
    return step


# ============================================================================
# PER-TYPE EVALUATION
# ============================================================================

def _judge_stroke_path(step: StepSpec, attempt: Attempt) -> EvaluationResult:
    strokes = [s for s in attempt.strokes if s]
    if not strokes:
        return _no_evaluation()
    guide = _parse(StrokePathGuide, step.guide)
    rubric = _parse(StrokePathRubric, step.rubric)

    res = evaluate_stroke_path(guide.path, strokes[-1], rubric)
    rule = STEP_RULES_V1["stroke-path"]
    feedback = rule.pass_message if res.passed else rule.fail_message.format(score_pct=round(res.score * 100))
    return EvaluationResult(
        passed=res.passed,
        score=res.score,
        stars=res.stars,
        distance_or_coverage=res.distance,
        feedback=feedback,
    )


def _judge_area_fill(
    step: StepSpec,
    attempt: Attempt,
    canvas_pixels: Optional[np.ndarray],
    mask_pixels: Optional[np.ndarray],
) -> EvaluationResult:
    guide = _parse(AreaFillGuide, step.guide)
    rubric = _parse(AreaFillRubric, step.rubric)

    if canvas_pixels is None:
        if not attempt.canvas:
            return _no_evaluation()
        canvas_pixels = decode_data_url(attempt.canvas)
    if mask_pixels is None:
        mask_pixels = decode_data_url(guide.mask)

    res = evaluate_area_fill(
        canvas_pixels,
        mask_pixels,
        guide.target_color,
        guide.tolerance or DEFAULT_FILL_TOLERANCE,
        rubric.coverage_threshold,
    )

    stars = 0
    if res.passed:
        top, mid = AREA_FILL_STAR_COVERAGE
        stars = 3 if res.coverage > top else 2 if res.coverage > mid else 1

    rule = STEP_RULES_V1["area-fill"]
    if res.passed:
        feedback = rule.pass_message
    else:
        feedback = rule.fail_message.format(
            color_note="Good color choice" if res.color_ok else "Wrong color",
            coverage_pct=round(res.coverage * 100),
        )
    return EvaluationResult(
        passed=res.passed,
        score=min(1.0, res.coverage),
        stars=stars,
        distance_or_coverage=res.coverage,
        feedback=feedback,
    )


def _judge_dot_to_dot(step: StepSpec, attempt: Attempt) -> EvaluationResult:
    guide = _parse(DotToDotGuide, step.guide)
    rubric = _parse(DotToDotRubric, step.rubric)
    tolerance = guide.tolerance_px if guide.tolerance_px is not None else rubric.tolerance_px

    ok = evaluate_dot_to_dot(attempt.taps, guide.targets, tolerance)
    total = len(guide.targets)
    rule = STEP_RULES_V1["dot-to-dot"]
    return EvaluationResult(
        passed=ok,
        score=1.0 if ok else min(1.0, len(attempt.taps) / total),
        stars=3 if ok else 0,
        distance_or_coverage=min(1.0, len(attempt.taps) / total),
        feedback=rule.pass_message if ok else rule.fail_message.format(done=len(attempt.taps), total=total),
    )


def _judge_layer_order(step: StepSpec, attempt: Attempt) -> EvaluationResult:
    guide = _parse(LayerOrderGuide, step.guide)
    ok = evaluate_layer_order(attempt.order, guide.target_order)
    rule = STEP_RULES_V1["layer-order"]
    return EvaluationResult(
        passed=ok,
        score=1.0 if ok else 0.0,
        stars=3 if ok else 0,
        feedback=rule.pass_message if ok else rule.fail_message,
    )


def evaluate_step(
    step: StepSpec,
    attempt: Attempt,
    canvas_pixels: Optional[np.ndarray] = None,
    mask_pixels: Optional[np.ndarray] = None,
) -> EvaluationResult:
    """
    Evaluates one attempt at a step.

    `canvas_pixels` / `mask_pixels` let in-process callers hand over RGBA
    buffers directly instead of data URLs. A malformed guide or missing
    attempt data yields a failing result, never an exception.
    """
    if not step.guide:
        return _no_evaluation()
    try:
        if step.type == "stroke-path":
            return _judge_stroke_path(step, attempt)
        if step.type == "area-fill":
            return _judge_area_fill(step, attempt, canvas_pixels, mask_pixels)
        if step.type == "dot-to-dot":
            return _judge_dot_to_dot(step, attempt)
        if step.type == "layer-order":
            return _judge_layer_order(step, attempt)
    except ValidationError as e:
        logger.warning("Step %s has an unusable guide or rubric: %s", step.id, e)
        return _no_evaluation()
    return _no_evaluation()


class HintState(BaseModel):
    current_tier: int = 0
    fail_count: int = 0


class HintTracker:
    """Escalates through a step's hint tiers as attempts fail."""

    def __init__(self, hints: List[Hint]):
        self.hints = list(hints)
        self.state = HintState()

    def record(self, result: EvaluationResult) -> HintState:
        if not result.passed:
            self.state = HintState(
                current_tier=min(MAX_HINT_TIER, self.state.current_tier + 1),
                fail_count=self.state.fail_count + 1,
            )
        return self.state

    def current_hint(self) -> Optional[Hint]:
        if self.state.current_tier == 0:
            return None
        for hint in self.hints:
            if hint.tier == self.state.current_tier:
                return hint
        return None

    def reset(self) -> None:
        self.state = HintState()
