import pytest
from sketchcoach.learn.judgment.sequence import evaluate_dot_to_dot, evaluate_layer_order
from helpers import pts

TARGETS = pts((10, 10), (50, 10), (50, 50))


def test_taps_in_order_within_tolerance_pass():
    taps = pts((14, 12), (45, 8), (58, 50))
    assert evaluate_dot_to_dot(taps, TARGETS, 12)


def test_same_taps_reordered_fail():
    taps = pts((45, 8), (14, 12), (58, 50))
    assert not evaluate_dot_to_dot(taps, TARGETS, 12)


def test_tap_count_must_match():
    assert not evaluate_dot_to_dot(TARGETS[:2], TARGETS, 12)
    assert not evaluate_dot_to_dot(TARGETS + pts((0, 0)), TARGETS, 12)


def test_tolerance_boundary_is_inclusive():
    assert evaluate_dot_to_dot(pts((22, 10)), pts((10, 10)), 12)
    assert not evaluate_dot_to_dot(pts((22.5, 10)), pts((10, 10)), 12)


@pytest.mark.parametrize(
    "order,ok",
    [
        (["bg", "mid", "fg"], True),
        (["mid", "bg", "fg"], False),
        (["bg", "mid"], False),
        (["bg", "mid", "fg", "fg"], False),
    ],
)
def test_layer_order(order, ok):
    assert evaluate_layer_order(order, ["bg", "mid", "fg"]) is ok
