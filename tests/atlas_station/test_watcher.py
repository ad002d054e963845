"""
Unit tests for the presence watcher.

Tests debouncing, first-report handling, the settle delay, decision
application and tolerance of malformed payloads -- all in-memory.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from atlas_station.presence.models import PresenceReport
from atlas_station.presence.policy import decide
from atlas_station.presence.watcher import PresenceWatcher


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _watcher(sink, settle_delay: float = 0.0, notify_on_first: bool = False, policy=None):
    relay = MagicMock()
    antenna = MagicMock()
    antenna.set = AsyncMock(return_value=True)
    watcher = PresenceWatcher(
        relay,
        antenna,
        sink,
        settle_delay=settle_delay,
        notify_on_first=notify_on_first,
        policy=policy or decide,
    )
    return watcher, relay, antenna


def _report(occupant: str) -> PresenceReport:
    return PresenceReport(occupant=occupant)


def _payload(occupant: str) -> bytes:
    return json.dumps({"inuse_ip": occupant, "serial": "1234"}).encode()


# ---------------------------------------------------------------------------
# Debouncing
# ---------------------------------------------------------------------------

class TestDebounce:
    """Repeated identical reports never trigger the policy."""

    @pytest.mark.asyncio
    async def test_a_a_b_triggers_once_for_b(self, sink):
        policy = MagicMock(side_effect=decide)
        watcher, relay, antenna = _watcher(sink, policy=policy)

        assert await watcher.on_report(_report("")) is None
        assert await watcher.on_report(_report("")) is None
        decision = await watcher.on_report(_report("10.0.0.5"))

        policy.assert_called_once_with("10.0.0.5")
        assert decision.relay_on is True
        relay.set.assert_called_once_with(True)
        antenna.set.assert_awaited_once_with("1a")

    @pytest.mark.asyncio
    async def test_case_only_change_is_a_repeat(self, sink):
        policy = MagicMock(side_effect=decide)
        watcher, _, _ = _watcher(sink, policy=policy)

        await watcher.on_report(_report("fe80::1"))
        await watcher.on_report(_report("FE80::1"))
        policy.assert_not_called()

    @pytest.mark.asyncio
    async def test_every_change_is_applied(self, sink):
        watcher, relay, antenna = _watcher(sink)

        await watcher.on_report(_report(""))
        await watcher.on_report(_report("10.0.0.5"))
        await watcher.on_report(_report(""))

        assert [c.args for c in relay.set.call_args_list] == [(True,), (False,)]
        assert [c.args for c in antenna.set.await_args_list] == [("1a",), ("1b",)]
        assert len(sink.messages) == 2
        assert watcher.last_occupant == ""


# ---------------------------------------------------------------------------
# First report after startup
# ---------------------------------------------------------------------------

class TestFirstReport:
    """Baseline vs. notify-on-first behaviour."""

    @pytest.mark.asyncio
    async def test_first_report_sets_baseline_silently(self, sink):
        watcher, relay, antenna = _watcher(sink)

        assert await watcher.on_report(_report("10.0.0.5")) is None
        assert watcher.last_occupant == "10.0.0.5"
        relay.set.assert_not_called()
        antenna.set.assert_not_awaited()
        assert sink.texts == []

    @pytest.mark.asyncio
    async def test_first_report_notifies_when_enabled(self, sink):
        watcher, relay, antenna = _watcher(sink, notify_on_first=True)

        decision = await watcher.on_report(_report(""))
        assert decision.relay_on is False
        relay.set.assert_called_once_with(False)
        antenna.set.assert_awaited_once_with("1b")
        assert sink.messages == [decision.message]


# ---------------------------------------------------------------------------
# Settle delay
# ---------------------------------------------------------------------------

class TestSettleDelay:
    """The decision is applied only after the settle delay."""

    @pytest.mark.asyncio
    async def test_waits_before_switching(self, sink):
        watcher, relay, _ = _watcher(sink, settle_delay=3.0)
        await watcher.on_report(_report(""))

        with patch(
            "atlas_station.presence.watcher.asyncio.sleep",
            new_callable=AsyncMock,
        ) as sleep:
            await watcher.on_report(_report("10.0.0.5"))

        sleep.assert_awaited_once_with(3.0)
        relay.set.assert_called_once_with(True)

    @pytest.mark.asyncio
    async def test_repeat_does_not_wait(self, sink):
        watcher, _, _ = _watcher(sink, settle_delay=3.0)
        await watcher.on_report(_report(""))

        with patch(
            "atlas_station.presence.watcher.asyncio.sleep",
            new_callable=AsyncMock,
        ) as sleep:
            await watcher.on_report(_report(""))

        sleep.assert_not_awaited()


# ---------------------------------------------------------------------------
# Transport input
# ---------------------------------------------------------------------------

class TestTransportInput:
    """Payloads flow through the queue; bad input is dropped."""

    @pytest.mark.asyncio
    async def test_queue_processes_in_order(self, sink):
        watcher, relay, _ = _watcher(sink)
        await watcher.start()
        try:
            await watcher.handle_message("flex/discovery", _payload(""))
            await watcher.handle_message("flex/discovery", b"garbage")
            await watcher.handle_message("flex/discovery", _payload("10.0.0.5"))
            await watcher.handle_message("flex/discovery", _payload("10.0.0.5"))

            for _ in range(50):
                if relay.set.called:
                    break
                await asyncio.sleep(0.01)
        finally:
            await watcher.stop()

        relay.set.assert_called_once_with(True)
        assert watcher.last_report.serial == "1234"
        assert not watcher.is_running

    @pytest.mark.asyncio
    async def test_malformed_payload_is_silent(self, sink):
        watcher, relay, _ = _watcher(sink)

        await watcher.handle_message("flex/discovery", b"{broken")
        await watcher.handle_message("flex/discovery", b'{"serial": "1"}')

        assert watcher.last_report is None
        assert sink.texts == []
        relay.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_consumer(self, sink):
        calls = []

        def flaky_policy(occupant):
            calls.append(occupant)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return decide(occupant)

        watcher, relay, _ = _watcher(sink, policy=flaky_policy)
        await watcher.start()
        try:
            watcher.submit(_report(""))
            watcher.submit(_report("10.0.0.5"))
            watcher.submit(_report(""))

            for _ in range(50):
                if relay.set.called:
                    break
                await asyncio.sleep(0.01)
        finally:
            await watcher.stop()

        assert calls == ["10.0.0.5", ""]
        relay.set.assert_called_once_with(False)
