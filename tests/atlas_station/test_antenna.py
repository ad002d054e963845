"""
Tests for the MQTT antenna switch.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from atlas_station.communication.antenna import REPORT_REQUEST, AntennaSwitch


@pytest.fixture
def mqtt():
    client = MagicMock()
    client.publish = AsyncMock(return_value=True)
    return client


@pytest.fixture
def antenna(mqtt, sink, tmp_path):
    return AntennaSwitch(mqtt, sink, tmp_path, command_topic="ant/cmd", result_topic="ant/res")


class TestCommands:

    @pytest.mark.asyncio
    async def test_set_publishes_code(self, antenna, mqtt):
        assert await antenna.set("2c") is True
        mqtt.publish.assert_awaited_once_with("ant/cmd", "2c")

    @pytest.mark.asyncio
    async def test_report_request(self, antenna, mqtt):
        await antenna.request_report()
        mqtt.publish.assert_awaited_once_with("ant/cmd", REPORT_REQUEST)

    def test_register_subscribes_result_topic(self, antenna, mqtt):
        antenna.register()
        mqtt.subscribe.assert_called_once_with("ant/res", antenna.handle_result)


class TestResults:
    """Results are announced with the path picture when available."""

    @pytest.mark.asyncio
    async def test_image_when_picture_exists(self, antenna, sink, tmp_path):
        (tmp_path / "ANT1a.png").write_bytes(b"\x89PNG fake")

        await antenna.handle_result("ant/res", b"1a loop north")

        assert sink.texts == []
        data, caption, _, filename = sink.images[0]
        assert data == b"\x89PNG fake"
        assert caption == "Antenna patched to path: 1a loop north"
        assert filename == "ANT1a.png"

    @pytest.mark.asyncio
    async def test_text_when_no_picture(self, antenna, sink):
        await antenna.handle_result("ant/res", b"3b")
        assert sink.messages == ["Antenna patched to path: 3b"]
        assert sink.images == []

    @pytest.mark.asyncio
    async def test_unsafe_path_is_text_only(self, antenna, sink, tmp_path):
        (tmp_path / "ANT...png").write_bytes(b"x")
        await antenna.handle_result("ant/res", b"..")
        assert sink.messages == ["Antenna patched to path: .."]
        assert sink.images == []

    @pytest.mark.asyncio
    async def test_empty_result_ignored(self, antenna, sink):
        await antenna.handle_result("ant/res", b"  \n")
        assert sink.texts == []
        assert sink.images == []
