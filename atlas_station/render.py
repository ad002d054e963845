"""
Bearing picture rendering.

Draws rotator bearings as translucent lines on a locator map.
0 degrees points up, angles increase clockwise.
"""

import logging
import math
from pathlib import Path
from typing import Optional

import cv2

logger = logging.getLogger("atlas.station.render")

CANVAS_SIZE = 600
LINE_LENGTH = 280
LINE_THICKNESS = 15
MARKER_ALPHA = 0x80 / 0xFF

# BGR
CURRENT_COLOR = (0x33, 0xFF, 0x33)
TARGET_COLOR = (0x33, 0x33, 0xFF)


def bearing_endpoint(degrees: float, center: int = CANVAS_SIZE // 2, length: int = LINE_LENGTH) -> tuple[int, int]:
    """Pixel coordinates of the outer end of a bearing line."""
    angle = math.radians(degrees - 90.0)
    return (
        int(round(center + math.cos(angle) * length)),
        int(round(center + math.sin(angle) * length)),
    )


def _draw_bearing(frame, degrees: float, color: tuple[int, int, int]) -> None:
    center = CANVAS_SIZE // 2
    cv2.line(
        frame,
        bearing_endpoint(degrees),
        (center, center),
        color,
        LINE_THICKNESS,
        cv2.LINE_AA,
    )


def render_bearing(
    base_path: Path,
    current: int,
    target: Optional[int] = None,
    quality: int = 85,
) -> Optional[bytes]:
    """
    Render the current (green) and optional target (red) bearing.

    Args:
        base_path: Locator picture to draw on
        current: Current bearing in degrees
        target: Target bearing in degrees, or None for a single marker
        quality: JPEG quality 1-100

    Returns:
        JPEG bytes, or None if the base picture cannot be read
    """
    image = cv2.imread(str(base_path), cv2.IMREAD_COLOR)
    if image is None:
        logger.warning("Cannot read locator picture %s", base_path)
        return None

    canvas = cv2.resize(image, (CANVAS_SIZE, CANVAS_SIZE))
    overlay = canvas.copy()

    _draw_bearing(overlay, current, CURRENT_COLOR)
    if target is not None and target >= 0:
        _draw_bearing(overlay, target, TARGET_COLOR)

    blended = cv2.addWeighted(overlay, MARKER_ALPHA, canvas, 1.0 - MARKER_ALPHA, 0)

    ok, jpeg = cv2.imencode(".jpg", blended, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        logger.warning("JPEG encoding failed for %s", base_path)
        return None
    return jpeg.tobytes()
