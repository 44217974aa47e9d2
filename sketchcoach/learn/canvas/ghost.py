"""
Ghost playback: replays a guide path as a timed animation so the learner can
see the motion before trying it.

Frames come from a FrameScheduler so the same playback runs against the
asyncio loop in the service and against a manual clock in tests.
"""
import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence
from PIL import Image, ImageDraw
from pydantic import BaseModel, Field
from ... import config
from ...utils import parse_color
from ..ingestion.models import Point

logger = logging.getLogger("ghost_player")

FrameCallback = Callable[[float], None]


class GhostOptions(BaseModel):
    speed_multiplier: float = Field(1.0, gt=0)
    color: str = "#666666"
    width: float = 2.0


# ============================================================================
# SURFACES
# ============================================================================

class Surface:
    """Anything ghost frames can be drawn onto."""

    def draw_segment(self, points: Sequence[Point], color: str, width: float) -> None:
        raise NotImplementedError


class PillowSurface(Surface):
    def __init__(self, width: int, height: int):
        self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self.image)

    def draw_segment(self, points: Sequence[Point], color: str, width: float) -> None:
        if len(points) < 2:
            return
        self._draw.line(
            [(p.x, p.y) for p in points],
            fill=parse_color(color) + (255,),
            width=max(1, int(round(width))),
            joint="curve",
        )


# ============================================================================
# SCHEDULERS
# ============================================================================

class FrameScheduler:
    def now(self) -> float:
        raise NotImplementedError

    def request_frame(self, callback: FrameCallback) -> None:
        raise NotImplementedError


class AsyncioFrameScheduler(FrameScheduler):
    """Fires callbacks every `frame_ms` on the running event loop."""

    def __init__(self, frame_ms: Optional[float] = None):
        self.frame_ms = frame_ms if frame_ms is not None else config.FRAME_MS

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def request_frame(self, callback: FrameCallback) -> None:
        loop = asyncio.get_running_loop()
        loop.call_later(self.frame_ms / 1000.0, lambda: callback(self.now()))


class ManualFrameScheduler(FrameScheduler):
    """Deterministic clock: frames only run when `advance` is called."""

    def __init__(self):
        self._time = 0.0
        self._pending: List[FrameCallback] = []

    @property
    def pending_frames(self) -> int:
        return len(self._pending)

    def now(self) -> float:
        return self._time

    def request_frame(self, callback: FrameCallback) -> None:
        self._pending.append(callback)

    def advance(self, ms: float) -> None:
        self._time += ms
        due, self._pending = self._pending, []
        for callback in due:
            callback(self._time)

    def run_until_idle(self, frame_ms: Optional[float] = None, max_frames: int = 100000) -> int:
        step = frame_ms if frame_ms is not None else config.FRAME_MS
        frames = 0
        while self._pending and frames < max_frames:
            self.advance(step)
            frames += 1
        return frames


# ============================================================================
# PLAYBACK
# ============================================================================

class PlaybackToken:
    """Generation counter. A playback started at one generation stops once it moves on."""

    def __init__(self):
        self.generation = 0

    def advance(self) -> int:
        self.generation += 1
        return self.generation


def play_ghost(
    surface: Optional[Surface],
    path: Sequence[Point],
    options: GhostOptions = GhostOptions(),
    scheduler: Optional[FrameScheduler] = None,
    token: Optional[PlaybackToken] = None,
) -> "asyncio.Future[bool]":
    """
    Animates `path` onto `surface`, drawing only the segments added since the
    previous frame. Resolves True when the whole path has been drawn.

    With a `token`, the playback is abandoned on the first frame after the
    token's generation changes and the future resolves False.
    Must be called from a running event loop.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    if surface is None or not path:
        future.set_result(True)
        return future

    scheduler = scheduler or AsyncioFrameScheduler()
    generation = token.generation if token is not None else None
    total_ms = len(path) * (config.FRAME_MS / options.speed_multiplier)
    start = scheduler.now()
    last_index = 0

    def frame(now: float) -> None:
        nonlocal last_index
        if future.done():
            return
        if token is not None and token.generation != generation:
            logger.debug("Ghost playback superseded (generation %s)", generation)
            future.set_result(False)
            return

        progress = min((now - start) / total_ms, 1.0) if total_ms > 0 else 1.0
        index = int(progress * (len(path) - 1))
        if index > last_index:
            surface.draw_segment(path[last_index:index + 1], options.color, options.width)
            last_index = index

        if progress < 1.0:
            scheduler.request_frame(frame)
        else:
            future.set_result(True)

    scheduler.request_frame(frame)
    return future


class GhostPlayer:
    """Plays one ghost at a time; starting a new one retires the previous playback."""

    def __init__(self, surface: Optional[Surface], scheduler: Optional[FrameScheduler] = None):
        self.surface = surface
        self.scheduler = scheduler
        self.token = PlaybackToken()

    def play(self, path: Sequence[Point], options: GhostOptions = GhostOptions()) -> "asyncio.Future[bool]":
        self.token.advance()
        return play_ghost(self.surface, path, options, self.scheduler, self.token)

    def cancel(self) -> None:
        self.token.advance()
