"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import pytest


@pytest.fixture
def red_square_image():
    """Fixture providing a 100x100 opaque red RGBA image."""
    import numpy as np

    from src.common.types import PixelBuffer

    data = np.zeros((100, 100, 4), dtype=np.uint8)
    data[:, :] = (255, 0, 0, 255)
    return PixelBuffer(data=data)


@pytest.fixture
def gradient_image():
    """
    Fixture providing a 100x100 opaque image with a distinct color per pixel.

    R encodes x, G encodes y, so any resampling error is visible.
    """
    import numpy as np

    from src.common.types import PixelBuffer

    ys, xs = np.mgrid[0:100, 0:100]
    data = np.zeros((100, 100, 4), dtype=np.uint8)
    data[:, :, 0] = xs
    data[:, :, 1] = ys
    data[:, :, 2] = (xs + ys) % 256
    data[:, :, 3] = 255
    return PixelBuffer(data=data)


@pytest.fixture
def skewed_points():
    """Fixture providing a skewed quadrilateral in canonical order."""
    return [(20, 10), (80, 30), (70, 90), (10, 70)]


@pytest.fixture
def png_data_url():
    """Fixture providing a function that wraps an RGB array as a PNG data URL."""
    import base64

    import cv2

    def _make(rgb):
        ok, encoded = cv2.imencode(".png", cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
        assert ok
        return "data:image/png;base64," + base64.b64encode(encoded.tobytes()).decode(
            "ascii"
        )

    return _make
