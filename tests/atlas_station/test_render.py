"""
Tests for bearing picture rendering.
"""

import cv2
import numpy as np
import pytest

from atlas_station.render import (
    CANVAS_SIZE,
    CURRENT_COLOR,
    bearing_endpoint,
    render_bearing,
)


class TestBearingEndpoint:
    """0 degrees is up, angles grow clockwise."""

    @pytest.mark.parametrize(
        "degrees,expected",
        [
            (0, (300, 20)),
            (90, (580, 300)),
            (180, (300, 580)),
            (270, (20, 300)),
        ],
    )
    def test_cardinal_points(self, degrees, expected):
        assert bearing_endpoint(degrees) == expected


class TestRenderBearing:

    def test_jpeg_output(self, asset_dir):
        data = render_bearing(asset_dir / "locator_opti.png", 45, 200)
        assert data is not None
        assert data[:2] == b"\xff\xd8"

        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert image.shape[:2] == (CANVAS_SIZE, CANVAS_SIZE)

    def test_current_marker_is_green(self, asset_dir):
        data = render_bearing(asset_dir / "locator_opti.png", 0)
        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)

        # Midway along the north line
        b, g, r = (int(v) for v in image[160, 300])
        assert g > r + 40
        assert g > b + 40
        assert CURRENT_COLOR[1] == 0xFF

    def test_missing_picture(self, tmp_path):
        assert render_bearing(tmp_path / "nope.png", 90) is None
