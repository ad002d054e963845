"""
Rotator control.

Drives the HTTP rotator controllers: powers them on, reads the current
bearing, sends move commands and tracks a move until the device reports
the target bearing or the poll budget runs out.

Only one rotation may be in flight per controller. The request path
claims the controller before its first await; the rotation task is the
only place the claim is released.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..notify.protocols import NotificationSink
from ..render import render_bearing
from .link import DeviceLink, device_url

logger = logging.getLogger("atlas.station.devices.rotator")

# Out-of-range bearing reported when the device cannot be read
UNKNOWN_DEGREES = 1000

_POSITION_FIELD = 3


class RotationPhase(str, Enum):
    """Lifecycle of the controller's current rotation."""
    IDLE = "idle"
    MOVING = "moving"
    ARRIVED = "arrived"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class RotatorDevice:
    """A rotator controller reachable over HTTP."""
    name: str
    address: str
    image: str  # locator picture inside the asset directory


class RotationRejected(Exception):
    """A rotation request was refused before any state changed."""


class RotationInProgressError(RotationRejected):
    """Another rotation is still being tracked."""


class InvalidAngleError(RotationRejected):
    """Target bearing outside 0-359."""


def _log_rotation_failure(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("Rotation task %s failed: %s", task.get_name(), task.exception())


def is_valid_angle(degrees: int) -> bool:
    """Check a bearing is within 0-359."""
    return 0 <= degrees <= 359


def parse_position(body: str) -> int:
    """
    Extract the bearing from a rotatorcontrol/get reply.

    The reply is pipe delimited with the integer bearing in the fourth
    field. Anything else yields UNKNOWN_DEGREES.
    """
    fields = body.split("|")
    if len(fields) <= _POSITION_FIELD:
        logger.warning("Unexpected rotator reply: %r", body)
        return UNKNOWN_DEGREES
    try:
        return int(fields[_POSITION_FIELD].strip())
    except ValueError:
        logger.warning("Non-numeric bearing in rotator reply: %r", body)
        return UNKNOWN_DEGREES


class RotatorController:
    """
    Rotation state machine shared by all configured rotators.

    States: IDLE -> MOVING -> {ARRIVED, TIMED_OUT}
    """

    def __init__(
        self,
        link: DeviceLink,
        sink: NotificationSink,
        asset_dir: Path,
        poll_interval: float = 2.0,
        max_polls: int = 90,
    ):
        self.link = link
        self.sink = sink
        self.asset_dir = Path(asset_dir)
        self.poll_interval = poll_interval
        self.max_polls = max_polls

        self._phase = RotationPhase.IDLE
        self._device: Optional[RotatorDevice] = None
        self._target: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def phase(self) -> RotationPhase:
        return self._phase

    @property
    def in_progress(self) -> bool:
        """True while a rotation is being tracked."""
        return self._phase is RotationPhase.MOVING

    @property
    def target(self) -> Optional[int]:
        """Target of the current or last rotation."""
        return self._target

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def query_position(self, device: RotatorDevice) -> int:
        """
        Read the current bearing of a rotator.

        Returns:
            Bearing in degrees, or UNKNOWN_DEGREES if unavailable
        """
        power = await self.link.exchange(
            device_url(device.address, "/rotatorcontrol/set/power/on")
        )
        if not power:
            logger.warning("%s: power/on operation failed", device.name)

        reply = await self.link.exchange(device_url(device.address, "/rotatorcontrol/get"))
        if not reply:
            logger.warning("%s: rotatorcontrol/get operation failed", device.name)
            return UNKNOWN_DEGREES

        logger.debug("%s: rotatorcontrol/get %s", device.name, reply)
        return parse_position(reply)

    async def report_position(self, device: RotatorDevice, reply_to: Optional[int] = None) -> int:
        """Query a rotator and send its bearing to the chat."""
        degrees = await self.query_position(device)
        caption = f"Rotator is currently at {degrees}°"
        if is_valid_angle(degrees):
            await self._send_bearing(device, caption, degrees, None, reply_to)
        else:
            await self.sink.send_text(caption, reply_to=reply_to)
        return degrees

    async def rotate(
        self,
        device: RotatorDevice,
        target: int,
        reply_to: Optional[int] = None,
    ) -> asyncio.Task:
        """
        Start moving a rotator to a bearing.

        Args:
            device: Rotator to move
            target: Target bearing 0-359
            reply_to: Chat message that requested the move

        Returns:
            Task tracking the move; its result is the final RotationPhase

        Raises:
            RotationInProgressError: A rotation is already being tracked
            InvalidAngleError: Target outside 0-359
        """
        if self.in_progress:
            raise RotationInProgressError(
                f"Rotation of {self._device.name if self._device else 'rotator'} "
                f"to {self._target}° in progress"
            )
        if not is_valid_angle(target):
            raise InvalidAngleError(f"Bearing {target} outside 0-359")

        # Claim before the first await
        self._phase = RotationPhase.MOVING
        self._device = device
        self._target = target

        try:
            current = await self.query_position(device)
            await self._announce(device, current, target, reply_to)
            await self.link.exchange(
                device_url(device.address, f"/rotatorcontrol/set/{target}")
            )
            self._task = asyncio.create_task(
                self._track(device, target, reply_to),
                name=f"rotate-{device.name}-{target}",
            )
            self._task.add_done_callback(_log_rotation_failure)
        except BaseException:
            self._phase = RotationPhase.IDLE
            raise

        logger.info("%s: rotating from %d° to %d°", device.name, current, target)
        return self._task

    async def _track(
        self,
        device: RotatorDevice,
        target: int,
        reply_to: Optional[int],
    ) -> RotationPhase:
        """Poll until arrival or timeout; always releases the controller."""
        outcome = RotationPhase.IDLE
        try:
            outcome = await self._wait_for_arrival(device, target)
            if outcome is RotationPhase.ARRIVED:
                await self._send_bearing(
                    device,
                    f"Rotation done, we're now looking at {target}°",
                    target,
                    None,
                    reply_to,
                )
            else:
                await self.sink.send_text(
                    f"Rotation timed out - status is {target}°",
                    reply_to=reply_to,
                )
        finally:
            self._phase = outcome
            logger.info("%s: rotation to %d° finished: %s", device.name, target, outcome.value)
        return outcome

    async def _wait_for_arrival(self, device: RotatorDevice, target: int) -> RotationPhase:
        for attempt in range(1, self.max_polls + 1):
            await asyncio.sleep(self.poll_interval)
            position = await self.query_position(device)
            logger.debug("%s: poll %d/%d at %d°", device.name, attempt, self.max_polls, position)
            if position == target:
                return RotationPhase.ARRIVED
        return RotationPhase.TIMED_OUT

    async def _announce(
        self,
        device: RotatorDevice,
        current: int,
        target: int,
        reply_to: Optional[int],
    ) -> None:
        caption = f"Please wait, rotating from {current}° to {target}°"
        if is_valid_angle(current):
            await self._send_bearing(device, caption, current, target, reply_to)
        else:
            await self.sink.send_text(caption, reply_to=reply_to)

    async def _send_bearing(
        self,
        device: RotatorDevice,
        caption: str,
        current: int,
        target: Optional[int],
        reply_to: Optional[int],
    ) -> None:
        """Send a bearing picture, falling back to text without a locator picture."""
        loop = asyncio.get_running_loop()
        image = await loop.run_in_executor(
            None,
            render_bearing,
            self.asset_dir / device.image,
            current,
            target,
        )
        if image is None:
            await self.sink.send_text(caption, reply_to=reply_to)
            return
        await self.sink.send_image(image, caption, reply_to=reply_to, filename="rotor.jpg")

    async def shutdown(self) -> None:
        """Stop tracking an in-flight rotation."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
