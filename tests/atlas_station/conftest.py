"""
Shared fixtures for Atlas Station tests.

Provides an in-memory notification sink, a scripted device link and a
locator picture on disk.
"""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import cv2
import numpy as np
import pytest

from atlas_station.devices import rotator as rotator_module
from atlas_station.notify.protocols import NotificationSink


class RecordingSink(NotificationSink):
    """Keeps every notification in memory."""

    def __init__(self):
        self.texts: list[tuple[str, Optional[int]]] = []
        self.images: list[tuple[bytes, str, Optional[int], str]] = []

    async def send_text(self, text: str, reply_to: Optional[int] = None) -> bool:
        self.texts.append((text, reply_to))
        return True

    async def send_image(
        self,
        data: bytes,
        caption: str,
        reply_to: Optional[int] = None,
        filename: str = "image.jpg",
    ) -> bool:
        self.images.append((data, caption, reply_to, filename))
        return True

    @property
    def captions(self) -> list[str]:
        return [caption for _, caption, _, _ in self.images]

    @property
    def messages(self) -> list[str]:
        return [text for text, _ in self.texts]


class ScriptedRotatorLink:
    """
    DeviceLink stand-in for a single rotator.

    Each rotatorcontrol/get returns the next scripted bearing; the last
    one repeats once the script runs out.
    """

    def __init__(self, positions: list[Optional[int]], power_reply: str = "OK"):
        self.positions = list(positions)
        self.power_reply = power_reply
        self.urls: list[str] = []
        self.exchange = AsyncMock(side_effect=self._exchange)
        self.fetch = AsyncMock(return_value=b"")
        self.fire = MagicMock()

    async def _exchange(self, url: str) -> str:
        self.urls.append(url)
        if url.endswith("/rotatorcontrol/set/power/on"):
            return self.power_reply
        if url.endswith("/rotatorcontrol/get"):
            position = self.positions.pop(0) if len(self.positions) > 1 else self.positions[0]
            if position is None:
                return ""
            return f"AZ|1216H|OK|{position}|0"
        return "OK"

    @property
    def get_count(self) -> int:
        return sum(1 for u in self.urls if u.endswith("/rotatorcontrol/get"))

    @property
    def move_urls(self) -> list[str]:
        return [
            u for u in self.urls
            if "/rotatorcontrol/set/" in u and not u.endswith("/power/on")
        ]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def asset_dir(tmp_path):
    """Asset directory with both locator pictures."""
    picture = np.full((400, 400, 3), 200, dtype=np.uint8)
    cv2.imwrite(str(tmp_path / "locator_opti.png"), picture)
    cv2.imwrite(str(tmp_path / "locator_loop.png"), picture)
    return tmp_path


@pytest.fixture
def fast_sleep(monkeypatch) -> list[float]:
    """Make rotator polling instant while recording the requested delays."""
    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def _sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(rotator_module.asyncio, "sleep", _sleep)
    return delays


@pytest.fixture
def scripted_link():
    """Factory for ScriptedRotatorLink instances."""
    return ScriptedRotatorLink
