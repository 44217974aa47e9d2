import pytest
from helpers import solid


@pytest.fixture
def walled_outline():
    """10x10 white template with a black vertical wall at x == 5."""
    img = solid(10, 10, (255, 255, 255, 255))
    img[:, 5] = (0, 0, 0, 255)
    return img
