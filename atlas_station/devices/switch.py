"""
Relay web switch.

The switch toggles the receiver path relay. Commands are fire-and-forget:
the reply is discarded and failures are only logged by the device link.
"""

import asyncio
import logging

from .link import DeviceLink, device_url

logger = logging.getLogger("atlas.station.devices.switch")


class RelaySwitch:
    """Relay channel on an HTTP web switch."""

    def __init__(self, link: DeviceLink, address: str, channel: int = 1):
        self.link = link
        self.address = address
        self.channel = channel

    def relay_url(self, on: bool) -> str:
        state = "on" if on else "off"
        return device_url(self.address, f"/relaycontrol/{state}/{self.channel}")

    def set(self, on: bool) -> asyncio.Task:
        """Switch the relay without waiting for the device."""
        logger.info("Relay %d -> %s", self.channel, "on" if on else "off")
        return self.link.fire(self.relay_url(on))
