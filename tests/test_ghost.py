import asyncio
from sketchcoach.learn.canvas.ghost import (
    GhostOptions,
    GhostPlayer,
    ManualFrameScheduler,
    PillowSurface,
    PlaybackToken,
    Surface,
    play_ghost,
)
from helpers import pts

PATH = pts(*[(i * 10, 5) for i in range(10)])


class RecordingSurface(Surface):
    def __init__(self):
        self.segments = []

    def draw_segment(self, points, color, width):
        self.segments.append(list(points))


def test_empty_path_resolves_immediately():
    async def body():
        scheduler = ManualFrameScheduler()
        future = play_ghost(RecordingSurface(), [], scheduler=scheduler)
        assert future.done() and future.result() is True
        assert scheduler.pending_frames == 0

        future = play_ghost(None, PATH, scheduler=scheduler)
        assert future.result() is True

    asyncio.run(body())


def test_playback_length_scales_with_speed():
    async def body(speed):
        scheduler = ManualFrameScheduler()
        future = play_ghost(RecordingSurface(), PATH, GhostOptions(speed_multiplier=speed), scheduler)
        frames = scheduler.run_until_idle(frame_ms=16)
        assert future.result() is True
        return frames

    assert asyncio.run(body(1.0)) == 10
    assert asyncio.run(body(2.0)) == 5


def test_each_segment_is_drawn_once():
    async def body():
        scheduler = ManualFrameScheduler()
        surface = RecordingSurface()
        future = play_ghost(surface, PATH, scheduler=scheduler)
        scheduler.run_until_idle(frame_ms=16)
        assert future.result() is True
        return surface.segments

    segments = asyncio.run(body())
    drawn = []
    for seg in segments:
        drawn.extend(zip(seg, seg[1:]))
    assert drawn == list(zip(PATH, PATH[1:]))
    # Consecutive segments share only their joining point
    for a, b in zip(segments, segments[1:]):
        assert a[-1] == b[0]


def test_superseded_playback_resolves_false():
    async def body():
        scheduler = ManualFrameScheduler()
        token = PlaybackToken()
        token.advance()
        first = play_ghost(RecordingSurface(), PATH, scheduler=scheduler, token=token)
        scheduler.advance(16)
        assert not first.done()

        token.advance()
        scheduler.advance(16)
        assert first.result() is False
        assert scheduler.pending_frames == 0

    asyncio.run(body())


def test_player_retires_previous_playback():
    async def body():
        scheduler = ManualFrameScheduler()
        surface = RecordingSurface()
        player = GhostPlayer(surface, scheduler)
        first = player.play(PATH)
        second = player.play(PATH[:3])
        scheduler.run_until_idle(frame_ms=16)
        assert first.result() is False
        assert second.result() is True

        third = player.play(PATH)
        player.cancel()
        scheduler.run_until_idle(frame_ms=16)
        assert third.result() is False

    asyncio.run(body())


def test_pillow_surface_receives_pixels():
    async def body():
        surface = PillowSurface(100, 10)
        scheduler = ManualFrameScheduler()
        future = play_ghost(surface, PATH, GhostOptions(color="#ff0000", width=3), scheduler)
        scheduler.run_until_idle(frame_ms=16)
        await future
        return surface.image

    image = asyncio.run(body())
    assert image.getpixel((45, 5)) == (255, 0, 0, 255)
    assert image.getpixel((45, 0))[3] == 0
