"""
Antenna switch over MQTT.

The switch takes path codes (e.g. "1a") on its command topic and reports
each patched path on its result topic as "<path> <details>".
"""

import logging
import re
from pathlib import Path

from ..notify.protocols import NotificationSink
from .mqtt import StationMQTT

logger = logging.getLogger("atlas.station.communication.antenna")

REPORT_REQUEST = "R"

_PATH_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class AntennaSwitch:
    """Sends path codes to the antenna switch and announces its results."""

    def __init__(
        self,
        mqtt: StationMQTT,
        sink: NotificationSink,
        asset_dir: Path,
        command_topic: str = "ant/cmd",
        result_topic: str = "ant/res",
    ):
        self.mqtt = mqtt
        self.sink = sink
        self.asset_dir = Path(asset_dir)
        self.command_topic = command_topic
        self.result_topic = result_topic

    def register(self) -> None:
        """Listen for switch results."""
        self.mqtt.subscribe(self.result_topic, self.handle_result)

    async def set(self, code: str) -> bool:
        """Patch the antenna path identified by code."""
        logger.info("Antenna -> %s", code)
        return await self.mqtt.publish(self.command_topic, code)

    async def request_report(self) -> bool:
        """Ask the switch to report its current path."""
        return await self.mqtt.publish(self.command_topic, REPORT_REQUEST)

    def path_image(self, path: str) -> Path:
        return self.asset_dir / f"ANT{path}.png"

    async def handle_result(self, topic: str, payload: bytes) -> None:
        """Announce a patched path, with its picture when one exists."""
        raw = payload.decode(errors="replace").strip()
        if not raw:
            return

        path = raw.split(" ", 1)[0]
        caption = f"Antenna patched to path: {raw}"
        logger.info("Antenna switch reported: %s", raw)

        image = self.path_image(path)
        if _PATH_PATTERN.match(path) and image.is_file():
            await self.sink.send_image(image.read_bytes(), caption, filename=image.name)
        else:
            await self.sink.send_text(caption)
