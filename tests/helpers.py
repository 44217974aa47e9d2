import numpy as np
from sketchcoach.learn.ingestion.models import Point


def pts(*coords):
    return [Point(x=x, y=y) for x, y in coords]


def solid(width, height, rgba):
    buf = np.zeros((height, width, 4), dtype=np.uint8)
    buf[...] = rgba
    return buf
