import pytest
from sketchcoach.learn.ingestion.models import Point
from sketchcoach.learn.stroke_engine.resample import resample
from sketchcoach.learn.stroke_engine.metrics import path_length
from helpers import pts


def test_empty_input_gives_empty_output():
    assert resample([], 128) == []


@pytest.mark.parametrize("count", [1, 2, 5, 37])
@pytest.mark.parametrize("target", [2, 16, 128])
def test_output_length_is_exact(count, target):
    points = [Point(x=i * 3.0, y=(i % 2) * 7.0) for i in range(count)]
    assert len(resample(points, target)) == target


def test_single_point_is_repeated():
    p = Point(x=4, y=9)
    out = resample([p], 10)
    assert out == [p] * 10


def test_zero_length_path_repeats_first_point():
    out = resample(pts((3, 3), (3, 3), (3, 3)), 8)
    assert len(out) == 8
    assert all(o == Point(x=3, y=3) for o in out)


def test_straight_line_is_evenly_spaced():
    out = resample(pts((0, 0), (127, 0)), 128)
    xs = [p.x for p in out]
    for i, x in enumerate(xs):
        assert x == pytest.approx(i)
    gaps = [b - a for a, b in zip(xs, xs[1:])]
    assert all(g == pytest.approx(1.0) for g in gaps)


def test_endpoints_are_preserved_exactly():
    points = pts((1.5, 2.25), (40, 13), (17, 80), (99.125, 3.5))
    out = resample(points, 50)
    assert out[0] == points[0]
    assert out[-1] == points[-1]


def test_duplicate_points_do_not_move_cursor_backwards():
    out = resample(pts((0, 0), (0, 0), (10, 0), (10, 0)), 11)
    assert [p.x for p in out] == pytest.approx(list(range(11)))


def test_resampling_keeps_arc_length():
    points = pts((0, 0), (30, 0), (90, 0))
    out = resample(points, 200)
    assert path_length(out) == pytest.approx(path_length(points), rel=1e-6)


def test_pressure_and_timestamp_are_interpolated():
    points = [Point(x=0, y=0, p=0.0, t=0.0), Point(x=10, y=0, p=1.0, t=100.0)]
    mid = resample(points, 3)[1]
    assert mid.x == pytest.approx(5)
    assert mid.p == pytest.approx(0.5)
    assert mid.t == pytest.approx(50)


def test_missing_pressure_keeps_the_known_value():
    points = [Point(x=0, y=0, p=0.4), Point(x=10, y=0)]
    assert resample(points, 3)[1].p == pytest.approx(0.4)
