from pydantic import BaseModel
from typing import Dict
from ..ingestion.models import HSLTolerance, StrokePathRubric, AreaFillRubric


class StepRule(BaseModel):
    step_type: str
    pass_message: str  # Shown on success (exact text)
    fail_message: str  # Format string, filled by the evaluator


DEFAULT_STROKE_RUBRIC = StrokePathRubric()
DEFAULT_AREA_FILL_RUBRIC = AreaFillRubric()
DEFAULT_FILL_TOLERANCE = HSLTolerance(h=10, s=8, l=8)

# Area-fill stars are awarded from coverage once the step has passed
AREA_FILL_STAR_COVERAGE = (0.95, 0.9)

MAX_HINT_TIER = 3

STEP_RULES_V1: Dict[str, StepRule] = {
    "stroke-path": StepRule(
        step_type="stroke-path",
        pass_message="Great stroke! Well done.",
        fail_message="Try to follow the guide more closely. Score: {score_pct}%",
    ),
    "area-fill": StepRule(
        step_type="area-fill",
        pass_message="Perfect fill! Nice work.",
        fail_message="{color_note}, coverage: {coverage_pct}%",
    ),
    "dot-to-dot": StepRule(
        step_type="dot-to-dot",
        pass_message="Perfect sequence! All dots connected correctly.",
        fail_message="Connect the dots in order. Progress: {done}/{total}",
    ),
    "layer-order": StepRule(
        step_type="layer-order",
        pass_message="Correct layer order! Well organized.",
        fail_message="Layer order is incorrect. Try again.",
    ),
}

NO_EVALUATION_MESSAGE = "No evaluation performed"
