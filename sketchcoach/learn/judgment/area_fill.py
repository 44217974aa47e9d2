"""
Area fill: the flood-fill paint operation and coverage/colour scoring.

Buffers are HxWx4 uint8 RGBA numpy arrays, the same layout the canvas hands
out for its pixels.
"""
import logging
import math
from typing import Optional, Tuple, Union
import numpy as np
from pydantic import BaseModel
from ... import config
from ...utils import parse_color
from ..ingestion.models import HSLColor, HSLTolerance, Point
from .rules import DEFAULT_FILL_TOLERANCE, DEFAULT_AREA_FILL_RUBRIC

logger = logging.getLogger("area_fill")

ColorLike = Union[str, Tuple[int, int, int], Tuple[int, int, int, int]]


class AreaFillResult(BaseModel):
    coverage: float
    color_ok: bool
    passed: bool


_FAILED = AreaFillResult(coverage=0.0, color_ok=False, passed=False)


# ============================================================================
# COLOUR SPACE
# ============================================================================

def rgb_to_hsl(r: float, g: float, b: float) -> HSLColor:
    r /= 255.0
    g /= 255.0
    b /= 255.0
    mx = max(r, g, b)
    mn = min(r, g, b)
    diff = mx - mn

    h = 0.0
    s = 0.0
    l = (mx + mn) / 2

    if diff != 0:
        s = diff / (2 - mx - mn) if l > 0.5 else diff / (mx + mn)
        if mx == r:
            h = ((g - b) / diff + (6 if g < b else 0)) / 6
        elif mx == g:
            h = ((b - r) / diff + 2) / 6
        else:
            h = ((r - g) / diff + 4) / 6

    return HSLColor(h=h * 360, s=s * 100, l=l * 100)


def _rgb_to_hsl_arrays(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorised rgb_to_hsl over an Nx3 array; same formula, same branch order."""
    c = rgb.astype(float) / 255.0
    r, g, b = c[:, 0], c[:, 1], c[:, 2]
    mx = c.max(axis=1)
    mn = c.min(axis=1)
    diff = mx - mn
    l = (mx + mn) / 2

    with np.errstate(divide="ignore", invalid="ignore"):
        s = np.where(l > 0.5, diff / (2 - mx - mn), diff / (mx + mn))
        h = np.select(
            [mx == r, mx == g],
            [((g - b) / diff + np.where(g < b, 6.0, 0.0)) / 6, ((b - r) / diff + 2) / 6],
            default=((r - g) / diff + 4) / 6,
        )
    flat = diff == 0
    s = np.where(flat, 0.0, s)
    h = np.where(flat, 0.0, h)
    return h * 360, s * 100, l * 100


def hue_difference(h1: float, h2: float) -> float:
    diff = abs(h1 - h2)
    return min(diff, 360 - diff)


def is_color_within_tolerance(color: HSLColor, target: HSLColor, tolerance: HSLTolerance) -> bool:
    return (
        hue_difference(color.h, target.h) <= tolerance.h
        and abs(color.s - target.s) <= tolerance.s
        and abs(color.l - target.l) <= tolerance.l
    )


# ============================================================================
# FLOOD FILL
# ============================================================================

def boundary_walls(boundary: np.ndarray, threshold: Optional[float] = None) -> np.ndarray:
    """Boolean HxW array, True where the outline image blocks a fill."""
    if threshold is None:
        threshold = config.BOUNDARY_BRIGHTNESS
    brightness = boundary[..., :3].astype(np.uint16).sum(axis=2) / 3.0
    return brightness < threshold


def flood_fill_mask(seed: Point, boundary: np.ndarray, threshold: Optional[float] = None) -> Optional[np.ndarray]:
    """
    Region reachable from `seed` without crossing a boundary pixel (4-connected).

    Uses an explicit stack so large regions cannot exhaust the call stack. Every
    pixel is visited at most once. Returns None for an out-of-bounds seed or a
    seed that sits on a boundary.
    """
    h, w = boundary.shape[:2]
    sx = int(math.floor(seed.x))
    sy = int(math.floor(seed.y))
    if sx < 0 or sx >= w or sy < 0 or sy >= h:
        logger.debug("Flood fill seed (%s, %s) outside %dx%d", sx, sy, w, h)
        return None

    walls = boundary_walls(boundary, threshold).ravel().tolist()
    start = sy * w + sx
    if walls[start]:
        logger.debug("Flood fill seed (%s, %s) is on a boundary", sx, sy)
        return None

    visited = bytearray(w * h)
    region = bytearray(w * h)
    stack = [start]

    while stack:
        idx = stack.pop()
        if visited[idx]:
            continue
        visited[idx] = 1
        if walls[idx]:
            continue
        region[idx] = 1

        x = idx % w
        y = idx // w
        if x > 0:
            stack.append(idx - 1)
        if x < w - 1:
            stack.append(idx + 1)
        if y > 0:
            stack.append(idx - w)
        if y < h - 1:
            stack.append(idx + w)

    return np.frombuffer(bytes(region), dtype=np.uint8).reshape(h, w).astype(bool)


def to_rgba(color: ColorLike) -> Tuple[int, int, int, int]:
    if isinstance(color, str):
        return parse_color(color) + (255,)
    if len(color) == 3:
        return (int(color[0]), int(color[1]), int(color[2]), 255)
    return tuple(int(c) for c in color[:4])


def flood_fill(seed: Point, fill_color: ColorLike, boundary: np.ndarray, output: np.ndarray) -> None:
    """Paints the region around `seed` into `output`. Silent no-op when nothing can be filled."""
    if boundary.shape[:2] != output.shape[:2]:
        logger.debug("Flood fill buffers differ: %s vs %s", boundary.shape, output.shape)
        return
    mask = flood_fill_mask(seed, boundary)
    if mask is None:
        return
    output[mask] = to_rgba(fill_color)


def fill_rect_mask(width: int, height: int, x: float, y: float, w: float, h: float) -> Optional[np.ndarray]:
    """Mask for a rectangular selection, clipped to the canvas."""
    x0 = max(0, int(math.floor(x)))
    y0 = max(0, int(math.floor(y)))
    x1 = min(width, int(math.ceil(x + w)))
    y1 = min(height, int(math.ceil(y + h)))
    if x1 <= x0 or y1 <= y0:
        return None
    mask = np.zeros((height, width), dtype=bool)
    mask[y0:y1, x0:x1] = True
    return mask


def composite(base: np.ndarray, mask: np.ndarray, color: ColorLike, opacity: float = 1.0) -> np.ndarray:
    """Source-over blend of a solid colour onto `base` wherever `mask` is set. Returns a new buffer."""
    opacity = max(0.0, min(1.0, float(opacity)))
    out = base.copy()
    if opacity == 0 or not mask.any():
        return out

    r, g, b, _ = to_rgba(color)
    src = np.array([r, g, b], dtype=float)
    px = base[mask].astype(float)
    dst_a = px[:, 3] / 255.0
    out_a = opacity + dst_a * (1 - opacity)
    out_rgb = (src * opacity + px[:, :3] * (dst_a * (1 - opacity))[:, None]) / out_a[:, None]

    blended = np.empty_like(px)
    blended[:, :3] = out_rgb
    blended[:, 3] = out_a * 255.0
    out[mask] = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
    return out


# ============================================================================
# COVERAGE / COLOUR SCORING
# ============================================================================

def evaluate_area_fill(
    canvas_pixels: Optional[np.ndarray],
    mask_pixels: Optional[np.ndarray],
    target_hsl: HSLColor,
    tolerance: HSLTolerance = DEFAULT_FILL_TOLERANCE,
    coverage_threshold: float = DEFAULT_AREA_FILL_RUBRIC.coverage_threshold,
    color_ok_ratio: Optional[float] = None,
) -> AreaFillResult:
    """
    Coverage of the mask region by painted pixels, plus a colour check.

    Mask pixels with alpha != 0 form the target region; canvas pixels with
    alpha > 0 count as filled. Colour is judged in HSL with hue wraparound and
    passes when at least `color_ok_ratio` of the filled pixels match.
    """
    if color_ok_ratio is None:
        color_ok_ratio = config.COLOR_OK_RATIO
    if canvas_pixels is None or mask_pixels is None:
        return _FAILED
    if canvas_pixels.shape[:2] != mask_pixels.shape[:2]:
        logger.debug("Canvas %s and mask %s differ in size", canvas_pixels.shape, mask_pixels.shape)
        return _FAILED

    region = mask_pixels[..., 3] != 0
    mask_count = int(region.sum())
    if mask_count == 0:
        return _FAILED

    filled = region & (canvas_pixels[..., 3] > 0)
    filled_count = int(filled.sum())
    coverage = filled_count / mask_count

    correct_count = 0
    if filled_count:
        h, s, l = _rgb_to_hsl_arrays(canvas_pixels[filled][:, :3])
        hue_diff = np.abs(h - target_hsl.h)
        hue_diff = np.minimum(hue_diff, 360 - hue_diff)
        ok = (
            (hue_diff <= tolerance.h)
            & (np.abs(s - target_hsl.s) <= tolerance.s)
            & (np.abs(l - target_hsl.l) <= tolerance.l)
        )
        correct_count = int(ok.sum())

    accuracy = correct_count / filled_count if filled_count else 0.0
    color_ok = accuracy >= color_ok_ratio
    return AreaFillResult(
        coverage=coverage,
        color_ok=color_ok,
        passed=coverage >= coverage_threshold and color_ok,
    )
