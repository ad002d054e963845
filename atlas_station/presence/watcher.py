"""
Radio presence watcher.

Consumes presence reports in arrival order, drops repeats of the current
occupant and, after a settle delay, applies the switch policy for every
genuine change: relay, antenna path and an operator notification.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional

from ..notify.protocols import NotificationSink
from .models import PresenceReport
from .policy import SwitchDecision, decide

if TYPE_CHECKING:
    from ..communication.antenna import AntennaSwitch
    from ..devices.switch import RelaySwitch

logger = logging.getLogger("atlas.station.presence.watcher")


class PresenceWatcher:
    """
    Debounced presence-to-switch bridge.

    Only the last accepted occupant is kept for comparison, and the last
    received report for status queries.
    """

    def __init__(
        self,
        relay: "RelaySwitch",
        antenna: "AntennaSwitch",
        sink: NotificationSink,
        settle_delay: float = 3.0,
        notify_on_first: bool = False,
        occupant_field: str = "inuse_ip",
        policy: Callable[[str], SwitchDecision] = decide,
    ):
        self.relay = relay
        self.antenna = antenna
        self.sink = sink
        self.settle_delay = settle_delay
        self.notify_on_first = notify_on_first
        self.occupant_field = occupant_field
        self.policy = policy

        self._last_occupant: Optional[str] = None
        self._last_report: Optional[PresenceReport] = None
        self._queue: asyncio.Queue[PresenceReport] = asyncio.Queue()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_occupant(self) -> Optional[str]:
        """Occupant the switches were last set for."""
        return self._last_occupant

    @property
    def last_report(self) -> Optional[PresenceReport]:
        """Most recent report received, accepted or not."""
        return self._last_report

    async def start(self) -> None:
        """Start consuming queued reports."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("Presence watcher started")

    async def stop(self) -> None:
        """Stop the consumer task."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Presence watcher stopped")

    async def handle_message(self, topic: str, payload: bytes) -> None:
        """Transport callback: decode a payload and queue it, dropping bad input."""
        report = PresenceReport.from_payload(payload, self.occupant_field)
        if report is None:
            return
        self.submit(report)

    def submit(self, report: PresenceReport) -> None:
        """Queue a report for in-order processing."""
        self._queue.put_nowait(report)

    async def _run(self) -> None:
        while self._running:
            report = await self._queue.get()
            try:
                await self.on_report(report)
            except Exception as e:
                logger.exception("Error handling presence report: %s", e)

    async def on_report(self, report: PresenceReport) -> Optional[SwitchDecision]:
        """
        Process one presence report.

        Returns:
            The applied decision, or None if the report was a repeat
        """
        self._last_report = report
        occupant = report.occupant.upper()

        if self._last_occupant is None and not self.notify_on_first:
            self._last_occupant = occupant
            logger.info("Initial radio occupant: %r", occupant)
            return None

        if occupant == self._last_occupant:
            return None

        self._last_occupant = occupant
        logger.info("Radio occupant changed to %r", occupant)

        await asyncio.sleep(self.settle_delay)

        decision = self.policy(self._last_occupant)
        await self.apply(decision)
        return decision

    async def apply(self, decision: SwitchDecision) -> None:
        """Drive the relay and antenna switch and tell the operators."""
        self.relay.set(decision.relay_on)
        await self.antenna.set(decision.antenna_code)
        await self.sink.send_text(decision.message)
        logger.info(
            "Switch: relay %s, antenna %s",
            "on" if decision.relay_on else "off",
            decision.antenna_code,
        )
