from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from ..utils import blank_rgba, decode_data_url, encode_data_url
from .ingestion.models import Attempt, EvaluationResult, Point, StepSpec
from .judgment.area_fill import flood_fill
from .judgment.engine import evaluate_step, validate_step
from .stroke_engine.resample import resample

router = APIRouter(prefix="/api/v1/learn", tags=["learn"])


class EvaluateRequest(BaseModel):
    step: StepSpec
    attempt: Attempt


class ResampleRequest(BaseModel):
    points: List[Point]
    target_count: int = Field(128, ge=1, le=4096)


class FloodFillRequest(BaseModel):
    boundary: str  # Base64 data URL of the outline image
    seed: Point
    color: str = "#000000"
    canvas: Optional[str] = None  # Existing fill layer; blank when omitted


@router.post("/evaluate", response_model=EvaluationResult)
async def evaluate_attempt(request: EvaluateRequest):
    """
    Scores one attempt at a step and returns pass/score/stars with feedback.
    """
    return evaluate_step(request.step, request.attempt)


@router.post("/resample")
async def resample_points(request: ResampleRequest):
    return {"points": resample(request.points, request.target_count)}


@router.post("/steps/validate")
async def validate_step_spec(payload: Dict[str, Any]):
    try:
        step = validate_step(payload)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"valid": True, "step": step}


@router.post("/fill")
async def fill_region(request: FloodFillRequest):
    """
    Flood fills from `seed`, stopping at dark outline pixels, and returns the fill layer.
    """
    boundary = decode_data_url(request.boundary)
    if boundary is None:
        raise HTTPException(status_code=400, detail="boundary is not a readable image")

    h, w = boundary.shape[:2]
    output = decode_data_url(request.canvas) if request.canvas else blank_rgba(w, h)
    if output is None:
        raise HTTPException(status_code=400, detail="canvas is not a readable image")

    flood_fill(request.seed, request.color, boundary, output)
    return {"image": encode_data_url(output)}
