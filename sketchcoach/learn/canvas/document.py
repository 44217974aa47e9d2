"""
CanvasDocument: the single owner of a drawing's strokes, texts and fill bitmap.

Pointer input comes in through pointer_down / pointer_move / pointer_up.
Anything that mutates the document while a gesture is open (undo, redo,
clear, fills, text edits) is queued and replayed in order the moment the
gesture ends, so a stroke being drawn never interleaves with another change.
"""
import asyncio
import itertools
import logging
from enum import Enum
from typing import Callable, List, Optional, Tuple
import numpy as np
from PIL import Image, ImageDraw
from pydantic import BaseModel
from ... import config
from ...utils import parse_color
from ..ingestion.models import ChangePayload, Constraints, Point, Stroke, TextItem, TextStyle, ToolKind
from ..judgment.area_fill import fill_rect_mask, flood_fill_mask
from ..stroke_engine.resample import resample
from .commands import (
    AddStroke,
    AddText,
    Command,
    DocumentState,
    EditText,
    MoveText,
    StyleText,
    apply_command,
    make_clear,
    make_fill,
)
from .ghost import FrameScheduler, GhostOptions, GhostPlayer, PillowSurface, Surface
from .history import CommandStack

logger = logging.getLogger("canvas_document")

ChangeListener = Callable[[ChangePayload], None]

TEXT_SIZE_RANGE = (10.0, 96.0)


class CanvasMode(str, Enum):
    IDLE = "idle"
    GESTURE_ACTIVE = "gesture_active"
    PLAYING_GHOST = "playing_ghost"


class Selection(BaseModel):
    x: float
    y: float
    w: float
    h: float


def _draw_stroke(draw: ImageDraw.ImageDraw, stroke: Stroke, fill) -> None:
    xy = [(p.x, p.y) for p in stroke.points]
    width = max(1, int(round(stroke.width)))
    if len(xy) == 1:
        x, y = xy[0]
        r = width / 2
        draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)
    else:
        draw.line(xy, fill=fill, width=width, joint="curve")


class CanvasDocument:
    def __init__(
        self,
        width: int,
        height: int,
        constraints: Optional[Constraints] = None,
        boundary: Optional[np.ndarray] = None,
        paint_mask: Optional[np.ndarray] = None,
        resample_points: Optional[int] = None,
        ghost_surface: Optional[Surface] = None,
        scheduler: Optional[FrameScheduler] = None,
    ):
        self.width = width
        self.height = height
        self.state = DocumentState(width=width, height=height)
        self.history = CommandStack()
        self.constraints = constraints or Constraints()
        # Template outlines: walls for flood fill, the line to follow for the trace tool
        self.boundary = self._sized(boundary, "boundary")
        # "Inside the lines" mask: alpha marks where paint may land
        self.paint_mask = self._sized(paint_mask, "paint mask")
        self.inside_lines_only = paint_mask is not None
        self.resample_points = resample_points or config.RESAMPLE_POINTS

        self.mode = CanvasMode.IDLE
        self.tool: ToolKind = self.constraints.tool or "pencil"
        self.color = self.constraints.color or "#000000"
        self.brush_width = self.constraints.size_range[0] if self.constraints.size_range else 4.0
        self.fill_opacity = 1.0

        self.selection: Optional[Selection] = None
        self.taps: List[Point] = []
        self.last_stroke_resampled: List[Point] = []

        self._gesture_tool: Optional[ToolKind] = None
        self._gesture_color = self.color
        self._gesture_width = self.brush_width
        self._active_points: List[Point] = []
        self._selection_anchor: Optional[Point] = None
        self._pending: List[Tuple[str, Callable[[], None]]] = []
        self._draining = False
        self._listeners: List[ChangeListener] = []
        self._ids = itertools.count(1)

        self.ghost_surface = ghost_surface if ghost_surface is not None else PillowSurface(width, height)
        self._ghost = GhostPlayer(self.ghost_surface, scheduler)
        self._ghost_future: Optional[asyncio.Future] = None

    def _sized(self, buffer: Optional[np.ndarray], name: str) -> Optional[np.ndarray]:
        if buffer is None:
            return None
        if buffer.shape[:2] != (self.height, self.width):
            logger.warning("Ignoring %s of shape %s for %dx%d canvas", name, buffer.shape, self.width, self.height)
            return None
        return buffer

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def strokes(self) -> Tuple[Stroke, ...]:
        return self.state.strokes

    @property
    def texts(self) -> Tuple[TextItem, ...]:
        return self.state.texts

    @property
    def fill(self) -> np.ndarray:
        return self.state.fill

    @property
    def is_gesture_active(self) -> bool:
        return self.mode == CanvasMode.GESTURE_ACTIVE

    @property
    def pending_actions(self) -> List[str]:
        return [name for name, _ in self._pending]

    def snapshot(self) -> ChangePayload:
        return ChangePayload(
            strokes=list(self.state.strokes),
            texts=list(self.state.texts),
            fill_version=self.state.fill_version,
        )

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        payload = self.snapshot()
        for listener in list(self._listeners):
            listener(payload)

    # ------------------------------------------------------------------
    # Brush state (validated against the step constraints)
    # ------------------------------------------------------------------

    def set_tool(self, tool: ToolKind) -> bool:
        if self.constraints.is_tool_locked() and tool != self.tool:
            logger.debug("Tool is locked to %s", self.tool)
            return False
        if not self.constraints.can_use_tool(tool):
            logger.debug("Tool %s not allowed for this step", tool)
            return False
        self.tool = tool
        return True

    def set_brush(self, color: Optional[str] = None, width: Optional[float] = None) -> bool:
        if color is not None and not self.constraints.can_use_color(color):
            logger.debug("Color %s not allowed for this step", color)
            return False
        if width is not None and (width <= 0 or not self.constraints.can_use_size(width)):
            logger.debug("Brush size %s not allowed for this step", width)
            return False
        if color is not None:
            self.color = color
        if width is not None:
            self.brush_width = width
        return True

    def _brush_allowed(self) -> bool:
        c = self.constraints
        return c.can_use_tool(self.tool) and c.can_use_size(self.brush_width) and c.can_use_color(self.color)

    # ------------------------------------------------------------------
    # Pointer input
    # ------------------------------------------------------------------

    def pointer_down(self, point: Point) -> bool:
        """Starts a gesture (or performs a tap). Returns False when the input is dropped."""
        if self.mode != CanvasMode.IDLE or self._draining:
            logger.debug("Pointer down ignored while %s", "draining" if self._draining else self.mode.value)
            return False
        if not self._brush_allowed():
            logger.debug("Pointer down dropped: brush violates step constraints")
            return False

        if self.tool == "fill":
            self.fill_at(point)
            return True
        if self.tool == "move":
            self.taps.append(point)
            return True
        if self.tool == "text":
            self.add_text(point.x, point.y)
            return True

        self.mode = CanvasMode.GESTURE_ACTIVE
        self._gesture_tool = self.tool
        if self.tool == "select":
            self._selection_anchor = point
            self.selection = Selection(x=point.x, y=point.y, w=0, h=0)
            return True

        self._gesture_color = self.color
        self._gesture_width = self.brush_width
        self._active_points = [point]
        return True

    def pointer_move(self, point: Point) -> None:
        if not self.is_gesture_active:
            return

        if self._gesture_tool == "select":
            a = self._selection_anchor
            self.selection = Selection(
                x=min(a.x, point.x),
                y=min(a.y, point.y),
                w=abs(point.x - a.x),
                h=abs(point.y - a.y),
            )
            return

        if self._gesture_tool == "line":
            # Only the end point matters; keep [start, latest]
            self._active_points = [self._active_points[0], point]
            return

        if self.inside_lines_only and not self._paintable(point):
            return
        if self._gesture_tool == "trace" and not self._on_outline(point):
            return
        self._active_points.append(point)

    def pointer_up(self, point: Optional[Point] = None) -> None:
        """Ends the open gesture. Losing pointer capture takes the same path."""
        if not self.is_gesture_active:
            return
        if point is not None:
            self.pointer_move(point)

        tool = self._gesture_tool
        self.mode = CanvasMode.IDLE
        self._gesture_tool = None

        # Listener calls made while this runs are queued behind the pending actions
        self._draining = True
        try:
            if tool != "select":
                self._commit_stroke(tool)
            self._selection_anchor = None
            self._drain_pending()
        finally:
            self._draining = False

    def pointer_cancel(self) -> None:
        self.pointer_up(None)

    def _commit_stroke(self, tool: ToolKind) -> None:
        points = self._active_points
        self._active_points = []
        if not points:
            return
        stroke = Stroke(
            id=f"stroke-{next(self._ids)}",
            points=points,
            color=self._gesture_color,
            width=self._gesture_width,
            tool=tool,
        )
        self.last_stroke_resampled = resample(stroke.points, self.resample_points)
        self._commit(AddStroke(stroke=stroke))

    def _pixel(self, buffer: np.ndarray, point: Point) -> Optional[np.ndarray]:
        x = int(np.floor(point.x))
        y = int(np.floor(point.y))
        if x < 0 or y < 0 or x >= buffer.shape[1] or y >= buffer.shape[0]:
            return None
        return buffer[y, x]

    def _paintable(self, point: Point) -> bool:
        px = self._pixel(self.paint_mask, point)
        return px is not None and int(px[3]) >= config.PAINT_MASK_ALPHA

    def _on_outline(self, point: Point) -> bool:
        if self.boundary is None:
            return True
        px = self._pixel(self.boundary, point)
        if px is None:
            return False
        brightness = (int(px[0]) + int(px[1]) + int(px[2])) / 3
        return brightness < config.TRACE_BRIGHTNESS

    # ------------------------------------------------------------------
    # Deferred mutations
    # ------------------------------------------------------------------

    def _request(self, name: str, action: Callable[[], None]) -> None:
        if self.is_gesture_active or self._draining:
            logger.debug("Deferring %s until gesture ends", name)
            self._pending.append((name, action))
            return
        action()

    def _drain_pending(self) -> None:
        while self._pending:
            name, action = self._pending.pop(0)
            logger.debug("Running deferred %s", name)
            action()

    def _commit(self, command: Command) -> None:
        self.state = apply_command(self.state, command)
        self.history.push(command)
        self._notify()

    def undo(self) -> None:
        self._request("undo", self._undo)

    def redo(self) -> None:
        self._request("redo", self._redo)

    def _undo(self) -> None:
        if not self.history.can_undo():
            return
        self.state = self.history.undo(self.state)
        self.selection = None
        self._notify()

    def _redo(self) -> None:
        if not self.history.can_redo():
            return
        self.state = self.history.redo(self.state)
        self.selection = None
        self._notify()

    def clear(self) -> None:
        """Wipes strokes and the fill bitmap as one undoable step. Texts stay."""
        def run() -> None:
            self.selection = None
            self._commit(make_clear(self.state))
        self._request("clear", run)

    def fill_at(self, seed: Point, color: Optional[str] = None, opacity: Optional[float] = None) -> None:
        """Flood fills the region around `seed`, bounded by the template outlines."""
        def run() -> None:
            if self.boundary is None:
                logger.debug("No boundary image; fill ignored")
                return
            mask = flood_fill_mask(seed, self.boundary)
            if mask is None:
                return
            cmd = make_fill(self.state, mask, color or self.color, self.fill_opacity if opacity is None else opacity)
            if cmd is not None:
                self._commit(cmd)
        self._request("fill", run)

    def fill_selection(self, opacity: Optional[float] = None, color: Optional[str] = None) -> None:
        def run() -> None:
            sel = self.selection
            if sel is None or sel.w <= 0 or sel.h <= 0:
                return
            mask = fill_rect_mask(self.width, self.height, sel.x, sel.y, sel.w, sel.h)
            if mask is None:
                return
            cmd = make_fill(self.state, mask, color or self.color, self.fill_opacity if opacity is None else opacity)
            if cmd is not None:
                self._commit(cmd)
        self._request("fill_selection", run)

    # ------------------------------------------------------------------
    # Text annotations
    # ------------------------------------------------------------------

    def add_text(self, x: float, y: float, text: str = "Text", color: Optional[str] = None,
                 size: Optional[float] = None) -> str:
        lo, hi = TEXT_SIZE_RANGE
        item = TextItem(
            id=f"text-{next(self._ids)}",
            x=x,
            y=y,
            text=text,
            color=color or self.color,
            size=max(lo, min(hi, size if size is not None else self.brush_width * 2)),
        )
        self._request("add_text", lambda: self._commit(AddText(item=item)))
        return item.id

    def move_text(self, text_id: str, x: float, y: float) -> None:
        def run() -> None:
            item = self.state.text(text_id)
            if item is None or (item.x, item.y) == (x, y):
                return
            self._commit(MoveText(id=text_id, from_pos=(item.x, item.y), to_pos=(x, y)))
        self._request("move_text", run)

    def edit_text(self, text_id: str, text: str) -> None:
        def run() -> None:
            item = self.state.text(text_id)
            if item is None or item.text == text:
                return
            self._commit(EditText(id=text_id, from_text=item.text, to_text=text))
        self._request("edit_text", run)

    def style_text(self, text_id: str, style: TextStyle) -> None:
        def run() -> None:
            item = self.state.text(text_id)
            if item is None:
                return
            before = item.style()
            after = item.styled(style).style()
            if before == after:
                return
            self._commit(StyleText(id=text_id, from_style=before, to_style=after))
        self._request("style_text", run)

    # ------------------------------------------------------------------
    # Attempt helpers
    # ------------------------------------------------------------------

    def clear_taps(self) -> None:
        self.taps = []

    def render(self, include_strokes: bool = True) -> np.ndarray:
        """Fill bitmap with strokes drawn on top, as an HxWx4 RGBA array.

        Eraser strokes cut through everything drawn before them, fill included.
        """
        image = Image.fromarray(np.array(self.state.fill, dtype=np.uint8))
        if include_strokes:
            draw = ImageDraw.Draw(image)
            for stroke in self.state.strokes:
                if stroke.tool == "eraser":
                    cut = Image.new("L", image.size, 0)
                    _draw_stroke(ImageDraw.Draw(cut), stroke, 255)
                    image.paste((0, 0, 0, 0), mask=cut)
                else:
                    _draw_stroke(draw, stroke, parse_color(stroke.color) + (255,))
        return np.array(image, dtype=np.uint8)

    # ------------------------------------------------------------------
    # Ghost playback
    # ------------------------------------------------------------------

    def play_ghost(self, path: List[Point], options: GhostOptions = GhostOptions()) -> "asyncio.Future[bool]":
        """
        Demonstrates `path` on the ghost surface. Pointer input is dropped until
        playback finishes. Must be called from a running event loop.
        """
        if self.is_gesture_active:
            logger.debug("Ghost playback refused during a gesture")
            future = asyncio.get_running_loop().create_future()
            future.set_result(False)
            return future

        future = self._ghost.play(path, options)
        if future.done():
            return future

        self.mode = CanvasMode.PLAYING_GHOST
        self._ghost_future = future

        def finished(done: "asyncio.Future[bool]") -> None:
            if self._ghost_future is done:
                self._ghost_future = None
                self.mode = CanvasMode.IDLE

        future.add_done_callback(finished)
        return future

    def cancel_ghost(self) -> None:
        """Retires the current playback; its future resolves False on the next frame."""
        self._ghost.cancel()
