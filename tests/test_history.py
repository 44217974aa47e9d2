import numpy as np
import pytest
from sketchcoach.learn.canvas.commands import (
    AddStroke,
    AddText,
    DocumentState,
    EditText,
    MoveText,
    StyleText,
    apply_command,
    make_clear,
    make_fill,
    revert_command,
)
from sketchcoach.learn.canvas.history import CommandStack
from sketchcoach.learn.ingestion.models import Stroke, TextItem, TextStyle
from helpers import pts


def stroke(sid, *coords):
    return Stroke(id=sid, points=pts(*coords))


@pytest.fixture
def state():
    return DocumentState(width=8, height=8)


def run(stack, state, command):
    stack.push(command)
    return apply_command(state, command)


def test_undo_and_redo_a_stroke(state):
    stack = CommandStack()
    s = stroke("a", (0, 0), (4, 4))
    state = run(stack, state, AddStroke(stroke=s))
    assert state.strokes == (s,)

    state = stack.undo(state)
    assert state.strokes == ()
    state = stack.redo(state)
    assert state.strokes == (s,)


def test_push_after_undo_discards_redo(state):
    stack = CommandStack()
    state = run(stack, state, AddStroke(stroke=stroke("a", (0, 0))))
    state = run(stack, state, AddStroke(stroke=stroke("b", (1, 1))))
    state = stack.undo(state)
    assert stack.can_redo()

    state = run(stack, state, AddStroke(stroke=stroke("c", (2, 2))))
    assert not stack.can_redo()
    assert len(stack) == 2
    assert [s.id for s in state.strokes] == ["a", "c"]
    assert stack.redo(state) is state


def test_undo_with_empty_history_is_a_no_op(state):
    stack = CommandStack()
    assert not stack.can_undo()
    assert stack.undo(state) is state


def test_cursor_tracks_position(state):
    stack = CommandStack()
    assert stack.cursor == -1
    state = run(stack, state, AddStroke(stroke=stroke("a", (0, 0))))
    assert stack.cursor == 0
    stack.undo(state)
    assert stack.cursor == -1
    stack.clear()
    assert len(stack) == 0 and not stack.can_redo()


def test_fill_round_trip_restores_pixels(state):
    mask = np.zeros((8, 8), dtype=bool)
    mask[2:5, 3:6] = True
    cmd = make_fill(state, mask, "#ff0000", 1.0)
    filled = apply_command(state, cmd)
    assert (filled.fill[mask] == (255, 0, 0, 255)).all()
    assert not filled.fill[~mask].any()
    assert filled.fill_version == 1

    reverted = revert_command(filled, cmd)
    assert np.array_equal(reverted.fill, state.fill)
    assert reverted.fill_version == 2
    # Snapshots stay untouched
    assert not state.fill.any()
    assert not state.fill.flags.writeable


def test_empty_fill_mask_builds_no_command(state):
    assert make_fill(state, np.zeros((8, 8), dtype=bool), "#000000") is None


def test_clear_keeps_texts_and_undoes_completely(state):
    stack = CommandStack()
    state = run(stack, state, AddStroke(stroke=stroke("a", (0, 0), (3, 3))))
    state = run(stack, state, AddText(item=TextItem(id="t", x=1, y=1, text="hi")))
    mask = np.ones((8, 8), dtype=bool)
    state = run(stack, state, make_fill(state, mask, "#0000ff"))
    before = state

    state = run(stack, state, make_clear(state))
    assert state.strokes == ()
    assert not state.fill.any()
    assert [t.id for t in state.texts] == ["t"]

    state = stack.undo(state)
    assert state.strokes == before.strokes
    assert np.array_equal(state.fill, before.fill)


def test_text_commands_invert(state):
    item = TextItem(id="t", x=1, y=2, text="one")
    state = apply_command(state, AddText(item=item))

    moved = apply_command(state, MoveText(id="t", from_pos=(1, 2), to_pos=(5, 6)))
    assert (moved.text("t").x, moved.text("t").y) == (5, 6)
    assert revert_command(moved, MoveText(id="t", from_pos=(1, 2), to_pos=(5, 6))).text("t") == item

    edit = EditText(id="t", from_text="one", to_text="two")
    assert apply_command(state, edit).text("t").text == "two"
    assert revert_command(apply_command(state, edit), edit).text("t") == item

    style = StyleText(id="t", from_style=item.style(), to_style=item.styled(TextStyle(bold=True, size=30)).style())
    styled = apply_command(state, style)
    assert styled.text("t").bold and styled.text("t").size == 30
    assert revert_command(styled, style).text("t") == item


def test_unknown_command_is_rejected(state):
    with pytest.raises(TypeError):
        apply_command(state, object())


def same_document(a, b):
    return (
        (a.width, a.height) == (b.width, b.height)
        and a.strokes == b.strokes
        and a.texts == b.texts
        and np.array_equal(a.fill, b.fill)
    )


def populated_state():
    state = DocumentState(width=8, height=8)
    state = apply_command(state, AddStroke(stroke=stroke("a", (0, 0), (4, 4))))
    state = apply_command(state, AddText(item=TextItem(id="t", x=1, y=2, text="one")))
    corner = np.zeros((8, 8), dtype=bool)
    corner[:3, :3] = True
    return apply_command(state, make_fill(state, corner, "#00ff00", 0.5))


def half_mask():
    mask = np.zeros((8, 8), dtype=bool)
    mask[:, 2:6] = True
    return mask


def style_change(item):
    return StyleText(id=item.id, from_style=item.style(), to_style=item.styled(TextStyle(font_family="Serif")).style())


COMMANDS = {
    "add_stroke": lambda s: AddStroke(stroke=stroke("b", (5, 5), (7, 1))),
    "add_text": lambda s: AddText(item=TextItem(id="u", x=3, y=3, text="two", font_family="Mono")),
    "move_text": lambda s: MoveText(id="t", from_pos=(1, 2), to_pos=(6, 7)),
    "edit_text": lambda s: EditText(id="t", from_text="one", to_text="uno"),
    "style_text": lambda s: style_change(s.text("t")),
    "fill": lambda s: make_fill(s, half_mask(), "#ff0000", 0.5),
    "clear": make_clear,
}


@pytest.mark.parametrize("name", sorted(COMMANDS))
def test_undo_then_redo_restores_exact_state(name):
    before = populated_state()
    stack = CommandStack()
    command = COMMANDS[name](before)

    after = run(stack, before, command)
    assert not same_document(after, before)

    undone = stack.undo(after)
    assert same_document(undone, before)

    redone = stack.redo(undone)
    assert same_document(redone, after)


def test_style_undo_clears_fields_that_were_unset():
    state = apply_command(DocumentState(width=4, height=4), AddText(item=TextItem(id="t", x=0, y=0, text="a")))
    cmd = style_change(state.text("t"))
    styled = apply_command(state, cmd)
    assert styled.text("t").font_family == "Serif"
    assert revert_command(styled, cmd).text("t").font_family is None
