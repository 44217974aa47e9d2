from PIL import Image, ImageColor
import base64
import binascii
import io
import numpy as np
from typing import Optional, Tuple


def decode_data_url(data_url: str) -> Optional[np.ndarray]:
    """
    Decode a base64 image (data URL or raw base64) into an HxWx4 uint8 array.
    Returns None when the payload is not a readable image.
    """
    if "base64," in data_url:
        data = data_url.split("base64,", 1)[1]
    else:
        data = data_url
    try:
        raw = base64.b64decode(data, validate=False)
        with Image.open(io.BytesIO(raw)) as img:
            return np.array(img.convert("RGBA"), dtype=np.uint8)
    except (binascii.Error, OSError, ValueError):
        return None


def encode_data_url(pixels: np.ndarray) -> str:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def parse_color(color: str) -> Tuple[int, int, int]:
    """'#ff0000', 'red', 'rgb(255,0,0)' -> (255, 0, 0). Unknown colours map to black."""
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        return (0, 0, 0)
    return int(rgb[0]), int(rgb[1]), int(rgb[2])


def blank_rgba(width: int, height: int) -> np.ndarray:
    return np.zeros((height, width, 4), dtype=np.uint8)
