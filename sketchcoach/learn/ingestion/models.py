from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional, Tuple
from ... import config

ToolKind = Literal["pencil", "pen", "brush", "eraser", "line", "trace", "fill", "move", "text", "select"]
StepType = Literal["stroke-path", "area-fill", "dot-to-dot", "layer-order"]


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    p: Optional[float] = None  # Pressure
    t: Optional[float] = None  # Timestamp (ms)


class Stroke(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    points: Tuple[Point, ...] = Field(min_length=1)
    color: str = "#000000"
    width: float = 2.0
    tool: ToolKind = "pencil"


class Constraints(BaseModel):
    """Per-step input restrictions. Anything that violates them is dropped at input time."""
    tool: Optional[ToolKind] = None
    size_range: Optional[Tuple[float, float]] = None
    color: Optional[str] = None
    locked: bool = False

    def is_tool_locked(self) -> bool:
        return self.locked

    def can_use_tool(self, tool: str) -> bool:
        if not self.tool:
            return True
        return self.tool == tool

    def can_use_size(self, size: float) -> bool:
        if not self.size_range:
            return True
        return self.size_range[0] <= size <= self.size_range[1]

    def can_use_color(self, color: str) -> bool:
        if not self.color:
            return True
        return color.lower() == self.color.lower()


class TextStyle(BaseModel):
    model_config = ConfigDict(frozen=True)

    color: Optional[str] = None
    size: Optional[float] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    align: Optional[Literal["left", "center", "right"]] = None
    font_family: Optional[str] = None


class TextItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    x: float
    y: float
    text: str
    color: str = "#000000"
    size: float = 16.0
    bold: bool = False
    italic: bool = False
    align: Literal["left", "center", "right"] = "left"
    font_family: Optional[str] = None

    def styled(self, style: TextStyle) -> "TextItem":
        changes = {k: v for k, v in style.model_dump().items() if v is not None}
        return self.model_copy(update=changes)

    def style(self) -> TextStyle:
        return TextStyle(
            color=self.color,
            size=self.size,
            bold=self.bold,
            italic=self.italic,
            align=self.align,
            font_family=self.font_family,
        )


class HSLColor(BaseModel):
    h: float = Field(ge=0, lt=360)
    s: float = Field(ge=0, le=100)
    l: float = Field(ge=0, le=100)


class HSLTolerance(BaseModel):
    h: float = 10.0
    s: float = 8.0
    l: float = 8.0


class StrokePathRubric(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Maximum Fréchet distance (px) that still counts as a pass
    max_distance_pass: float = Field(18.0, alias="maxDistancePass")
    # Strictest first: <= t3 -> 3 stars, <= t2 -> 2, <= t1 -> 1
    star_thresholds: Tuple[float, float, float] = Field((8.0, 14.0, 18.0), alias="starThresholds")
    resample_points: int = Field(config.RESAMPLE_POINTS, ge=2, le=config.MAX_RESAMPLE_POINTS, alias="resamplePoints")


class AreaFillRubric(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    coverage_threshold: float = Field(0.85, alias="coverageThreshold")


class DotToDotRubric(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tolerance_px: float = Field(12.0, alias="tolerancePx")


# --- Step guides (authored offline, read-only to the engine) ---

class StrokePathGuide(BaseModel):
    path: List[Point] = Field(min_length=1)


class AreaFillGuide(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mask: str  # Base64 data URL, alpha != 0 marks the target region
    target_color: HSLColor = Field(alias="targetColor")
    tolerance: Optional[HSLTolerance] = None


class DotToDotGuide(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    targets: List[Point] = Field(min_length=1)
    tolerance_px: Optional[float] = Field(None, alias="tolerancePx")


class LayerOrderGuide(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_order: List[str] = Field(alias="targetOrder")


class Hint(BaseModel):
    tier: Literal[1, 2, 3]
    text: str
    action: Optional[Literal["play_demo"]] = None


class StepSpec(BaseModel):
    id: str
    title: str = ""
    type: StepType
    constraints: Optional[Constraints] = None
    guide: Optional[Dict[str, Any]] = None
    rubric: Optional[Dict[str, Any]] = None
    hints: List[Hint] = []


class Attempt(BaseModel):
    strokes: List[List[Point]] = []
    taps: List[Point] = []
    order: List[str] = []
    canvas: Optional[str] = None  # Base64 data URL of the rendered canvas


class EvaluationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    passed: bool = Field(alias="pass")
    score: float = Field(ge=0.0, le=1.0)
    stars: int = Field(ge=0, le=3)
    distance_or_coverage: float = 0.0
    feedback: str = ""


class ChangePayload(BaseModel):
    version: Literal[2] = 2
    strokes: List[Stroke]
    texts: List[TextItem]
    fill_version: int
