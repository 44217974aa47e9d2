"""
Document snapshots and the reversible commands that move between them.

Every command carries what it needs to be applied and inverted on its own:
a Fill keeps the painted mask and the pixels it covered, a Clear keeps the
strokes and bitmap it wiped. Reducers never mutate their input state.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union
import numpy as np
from ..ingestion.models import Stroke, TextItem, TextStyle
from ..judgment.area_fill import composite
from ...utils import blank_rgba

logger = logging.getLogger("canvas_commands")


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class DocumentState:
    width: int
    height: int
    strokes: Tuple[Stroke, ...] = ()
    texts: Tuple[TextItem, ...] = ()
    fill: np.ndarray = field(default=None)
    fill_version: int = 0

    def __post_init__(self):
        if self.fill is None:
            object.__setattr__(self, "fill", _frozen(blank_rgba(self.width, self.height)))

    def stroke(self, stroke_id: str) -> Optional[Stroke]:
        for s in self.strokes:
            if s.id == stroke_id:
                return s
        return None

    def text(self, text_id: str) -> Optional[TextItem]:
        for t in self.texts:
            if t.id == text_id:
                return t
        return None


# ============================================================================
# COMMANDS
# ============================================================================

@dataclass(frozen=True)
class AddStroke:
    stroke: Stroke
    type: str = "add_stroke"


@dataclass(frozen=True)
class AddText:
    item: TextItem
    type: str = "add_text"


@dataclass(frozen=True)
class MoveText:
    id: str
    from_pos: Tuple[float, float]
    to_pos: Tuple[float, float]
    type: str = "move_text"


@dataclass(frozen=True)
class EditText:
    id: str
    from_text: str
    to_text: str
    type: str = "edit_text"


@dataclass(frozen=True)
class StyleText:
    id: str
    from_style: TextStyle
    to_style: TextStyle
    type: str = "style_text"


@dataclass(frozen=True, eq=False)
class FillPatch:
    """Bounding box of a fill plus its mask and the RGBA pixels it covered."""
    x0: int
    y0: int
    mask: np.ndarray
    before: np.ndarray

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        h, w = self.mask.shape
        return self.x0, self.y0, self.x0 + w, self.y0 + h


@dataclass(frozen=True, eq=False)
class Fill:
    region: FillPatch
    color: str
    opacity: float = 1.0
    type: str = "fill"


@dataclass(frozen=True, eq=False)
class Clear:
    strokes: Tuple[Stroke, ...]
    fill: np.ndarray
    type: str = "clear"


Command = Union[AddStroke, AddText, MoveText, EditText, StyleText, Fill, Clear]


def make_fill(state: DocumentState, mask: np.ndarray, color: str, opacity: float = 1.0) -> Optional[Fill]:
    """Builds a Fill command for a full-canvas boolean mask. None when the mask is empty."""
    if mask is None or mask.shape != (state.height, state.width) or not mask.any():
        return None
    ys, xs = np.nonzero(mask)
    x0, x1 = int(xs.min()), int(xs.max()) + 1
    y0, y1 = int(ys.min()), int(ys.max()) + 1
    patch = FillPatch(
        x0=x0,
        y0=y0,
        mask=_frozen(mask[y0:y1, x0:x1].copy()),
        before=_frozen(state.fill[y0:y1, x0:x1].copy()),
    )
    return Fill(region=patch, color=color, opacity=max(0.0, min(1.0, opacity)))


def make_clear(state: DocumentState) -> Clear:
    return Clear(strokes=state.strokes, fill=state.fill)


# ============================================================================
# REDUCERS
# ============================================================================

def _replace_text(state: DocumentState, text_id: str, **changes) -> DocumentState:
    item = state.text(text_id)
    if item is None:
        logger.debug("Text %s not in document", text_id)
        return state
    updated = item.model_copy(update=changes)
    return replace(state, texts=tuple(updated if t.id == text_id else t for t in state.texts))


def _restyle_text(state: DocumentState, text_id: str, style: TextStyle) -> DocumentState:
    # Styles on a StyleText are complete, so unset fields are written back too
    return _replace_text(state, text_id, **style.model_dump())


def _patch_fill(state: DocumentState, patch: FillPatch, pixels: np.ndarray) -> DocumentState:
    x0, y0, x1, y1 = patch.bounds
    fill = state.fill.copy()
    fill[y0:y1, x0:x1] = pixels
    return replace(state, fill=_frozen(fill), fill_version=state.fill_version + 1)


def apply_command(state: DocumentState, cmd: Command) -> DocumentState:
    if isinstance(cmd, AddStroke):
        return replace(state, strokes=state.strokes + (cmd.stroke,))
    if isinstance(cmd, AddText):
        return replace(state, texts=state.texts + (cmd.item,))
    if isinstance(cmd, MoveText):
        return _replace_text(state, cmd.id, x=cmd.to_pos[0], y=cmd.to_pos[1])
    if isinstance(cmd, EditText):
        return _replace_text(state, cmd.id, text=cmd.to_text)
    if isinstance(cmd, StyleText):
        return _restyle_text(state, cmd.id, cmd.to_style)
    if isinstance(cmd, Fill):
        x0, y0, x1, y1 = cmd.region.bounds
        painted = composite(state.fill[y0:y1, x0:x1], cmd.region.mask, cmd.color, cmd.opacity)
        return _patch_fill(state, cmd.region, painted)
    if isinstance(cmd, Clear):
        return replace(
            state,
            strokes=(),
            fill=_frozen(blank_rgba(state.width, state.height)),
            fill_version=state.fill_version + 1,
        )
    raise TypeError(f"Unknown command: {cmd!r}")


def revert_command(state: DocumentState, cmd: Command) -> DocumentState:
    if isinstance(cmd, AddStroke):
        return replace(state, strokes=tuple(s for s in state.strokes if s.id != cmd.stroke.id))
    if isinstance(cmd, AddText):
        return replace(state, texts=tuple(t for t in state.texts if t.id != cmd.item.id))
    if isinstance(cmd, MoveText):
        return _replace_text(state, cmd.id, x=cmd.from_pos[0], y=cmd.from_pos[1])
    if isinstance(cmd, EditText):
        return _replace_text(state, cmd.id, text=cmd.from_text)
    if isinstance(cmd, StyleText):
        return _restyle_text(state, cmd.id, cmd.from_style)
    if isinstance(cmd, Fill):
        x0, y0, x1, y1 = cmd.region.bounds
        restored = state.fill[y0:y1, x0:x1].copy()
        restored[cmd.region.mask] = cmd.region.before[cmd.region.mask]
        return _patch_fill(state, cmd.region, restored)
    if isinstance(cmd, Clear):
        return replace(state, strokes=cmd.strokes, fill=cmd.fill, fill_version=state.fill_version + 1)
    raise TypeError(f"Unknown command: {cmd!r}")
