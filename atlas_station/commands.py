"""
Operator chat commands.

Commands are handled one at a time in arrival order. Anything slow
(rotation tracking) runs in its own task so the chat stays responsive.
"""

import logging
import re
from typing import Awaitable, Callable, Optional

from .communication.antenna import AntennaSwitch
from .devices.link import DeviceLink
from .devices.rotator import (
    InvalidAngleError,
    RotationInProgressError,
    RotatorController,
    RotatorDevice,
)
from .notify.protocols import InboundCommand, NotificationSink
from .presence.watcher import PresenceWatcher

logger = logging.getLogger("atlas.station.commands")

INVALID_COMMAND = "That is an invalid command"
INVALID_RANGE = "That is an invalid command. Range must be in 0° - 359°"
ROTATION_BUSY = "Hey, wait my friend. Rotation is in progress!"
NO_STATUS = "Sorry, no idea..."
NO_FLASHES = "Sorry, the lightning map is not available right now"
ANTENNA_LEGEND = (
    "\r\n\r\n A = Flex, B = KIWI & SDRs Splitter"
    "\r\n\r\n e.g. Flex to ant1 = '/setant 1A'"
)
FLASHES_CAPTION = (
    "Uuhhhh, Let's hope, that all flashes hit other antennas. "
    "Go check further details here: {link}"
)

# Optional sign and ASCII digits only
_ANGLE_PATTERN = re.compile(r"^[+-]?[0-9]+$")

CommandHandler = Callable[[InboundCommand], Awaitable[None]]


class CommandDispatcher:
    """Routes chat commands to the station devices."""

    def __init__(
        self,
        sink: NotificationSink,
        rotator: RotatorController,
        main_rotator: RotatorDevice,
        loop_rotator: RotatorDevice,
        antenna: AntennaSwitch,
        link: DeviceLink,
        watcher: Optional[PresenceWatcher] = None,
        antenna_list: str = "",
        flashes_url: str = "",
        flashes_link: str = "",
    ):
        self.sink = sink
        self.rotator = rotator
        self.main_rotator = main_rotator
        self.loop_rotator = loop_rotator
        self.antenna = antenna
        self.link = link
        self.watcher = watcher
        self.antenna_list = antenna_list
        self.flashes_url = flashes_url
        self.flashes_link = flashes_link

        self._handlers: dict[str, CommandHandler] = {
            "/setrotor": lambda c: self._set_rotator(c, self.main_rotator),
            "/setloop": lambda c: self._set_rotator(c, self.loop_rotator),
            "/rotorstatus": lambda c: self._rotator_status(c, self.main_rotator),
            "/loopstatus": lambda c: self._rotator_status(c, self.loop_rotator),
            "/setant": self._set_antenna,
            "/getant": self._get_antenna,
            "/flexstatus": self._radio_status,
            "/flashes": self._flashes,
        }

    @property
    def commands(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, command: InboundCommand) -> bool:
        """
        Handle one chat command.

        Returns:
            True if the command was recognised
        """
        handler = self._handlers.get(command.command)
        if handler is None:
            logger.debug("Ignoring message: %s", command.text)
            return False

        logger.info("Command from %s: %s", command.sender or command.chat_id, command.text)
        await handler(command)
        return True

    async def _reply(self, command: InboundCommand, text: str) -> None:
        await self.sink.send_text(text, reply_to=command.message_id)

    async def _set_rotator(self, command: InboundCommand, device: RotatorDevice) -> None:
        tokens = command.tokens
        if len(tokens) != 2:
            await self._reply(command, INVALID_COMMAND)
            return

        if self.rotator.in_progress:
            await self._reply(command, ROTATION_BUSY)
            return

        if not _ANGLE_PATTERN.match(tokens[1]):
            await self._reply(command, INVALID_RANGE)
            return
        target = int(tokens[1])

        try:
            await self.rotator.rotate(device, target, reply_to=command.message_id)
        except RotationInProgressError:
            await self._reply(command, ROTATION_BUSY)
        except InvalidAngleError:
            await self._reply(command, INVALID_RANGE)

    async def _rotator_status(self, command: InboundCommand, device: RotatorDevice) -> None:
        await self.rotator.report_position(device, reply_to=command.message_id)

    async def _set_antenna(self, command: InboundCommand) -> None:
        tokens = command.tokens
        if len(tokens) != 2:
            await self._reply(command, INVALID_COMMAND)
            return
        await self.antenna.set(tokens[1])

    async def _get_antenna(self, command: InboundCommand) -> None:
        text = self.antenna_list.replace(";", "\r\n") + ANTENNA_LEGEND
        await self._reply(command, text)
        await self.antenna.request_report()

    async def _radio_status(self, command: InboundCommand) -> None:
        report = self.watcher.last_report if self.watcher else None
        if report is None:
            await self._reply(command, NO_STATUS)
            return

        await self._reply(
            command,
            f"Last state: {report.observed_at:%A, %d-%b-%y %H:%M:%S}\r\n"
            f" Radio {report.serial} in state: '{report.status}' "
            f"{report.occupant} {report.host}",
        )

    async def _flashes(self, command: InboundCommand) -> None:
        data = await self.link.fetch(self.flashes_url) if self.flashes_url else b""
        if not data:
            await self._reply(command, NO_FLASHES)
            return

        await self.sink.send_image(
            data,
            FLASHES_CAPTION.format(link=self.flashes_link),
            reply_to=command.message_id,
            filename="flashes.png",
        )
