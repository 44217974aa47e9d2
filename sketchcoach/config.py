"""
Runtime settings for the sketchcoach engine.

Values come from the environment (optionally a local .env file).
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    return int(_float_env(name, float(default)))


# Flood fill stops on outline pixels darker than this ((r+g+b)/3).
BOUNDARY_BRIGHTNESS = _float_env("SKETCHCOACH_BOUNDARY_BRIGHTNESS", 64.0)

# Trace tool only keeps points that land on pixels darker than this.
TRACE_BRIGHTNESS = _float_env("SKETCHCOACH_TRACE_BRIGHTNESS", 96.0)

# "Inside the lines" mode: paint mask alpha below this is not paintable.
PAINT_MASK_ALPHA = _int_env("SKETCHCOACH_PAINT_MASK_ALPHA", 128)

# Share of filled pixels that must match the target colour.
COLOR_OK_RATIO = _float_env("SKETCHCOACH_COLOR_OK_RATIO", 0.9)

RESAMPLE_POINTS = _int_env("SKETCHCOACH_RESAMPLE_POINTS", 128)

# Upper bound for a rubric resample count (Frechet cost grows with its square)
MAX_RESAMPLE_POINTS = _int_env("SKETCHCOACH_MAX_RESAMPLE_POINTS", 1024)

# One ghost animation frame per FRAME_MS at speed 1.0
FRAME_MS = _float_env("SKETCHCOACH_FRAME_MS", 16.0)

LOG_LEVEL = os.getenv("SKETCHCOACH_LOG_LEVEL", "INFO")
