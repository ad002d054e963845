"""
Atlas Station - Main entry point.

Runs the station relay:
- Radio presence watching and receiver switching
- Rotator control from the operator chat
- Antenna switch reporting
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

# Load environment variables
# .env.local overrides .env for machine-specific settings (tokens, addresses, etc.)
from dotenv import load_dotenv

_env_root = Path(__file__).parent.parent
load_dotenv(_env_root / ".env", override=True)
load_dotenv(_env_root / ".env.local", override=True)

from .commands import CommandDispatcher
from .communication.antenna import AntennaSwitch
from .communication.mqtt import StationMQTT
from .config import ConfigurationError, StationConfig, settings, validate_settings
from .devices.link import DeviceLink
from .devices.rotator import RotatorController, RotatorDevice
from .devices.switch import RelaySwitch
from .notify.telegram import TelegramBot
from .presence.watcher import PresenceWatcher

logger = logging.getLogger("atlas.station.main")


def setup_logging(level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)


class StationApplication:
    """
    Main station application.

    Manages:
    - Telegram command loop
    - MQTT transport, presence watcher and antenna switch
    - Rotator controller
    - Graceful shutdown
    """

    def __init__(self, config: Optional[StationConfig] = None):
        """Initialize the station application."""
        self.config = config or settings
        self._bot: Optional[TelegramBot] = None
        self._link: Optional[DeviceLink] = None
        self._mqtt: Optional[StationMQTT] = None
        self._watcher: Optional[PresenceWatcher] = None
        self._rotator: Optional[RotatorController] = None
        self._dispatcher: Optional[CommandDispatcher] = None
        self._shutdown_event = asyncio.Event()

    async def startup(self) -> None:
        """Initialize all components."""
        validate_settings(self.config)
        cfg = self.config
        logger.info("Atlas Station starting up...")

        self._bot = TelegramBot(
            token=cfg.telegram.token,
            chat_id=cfg.telegram.chat_id,
            api_url=cfg.telegram.api_url,
            poll_timeout=cfg.telegram.poll_timeout,
        )
        await self._bot.connect()
        if cfg.telegram.startup_drain:
            await self._bot.drain()

        self._link = DeviceLink(timeout=cfg.device.timeout)

        self._mqtt = StationMQTT(
            host=cfg.mqtt.host,
            port=cfg.mqtt.port,
            username=cfg.mqtt.username,
            password=cfg.mqtt.password,
            client_id=cfg.mqtt.client_id,
            reconnect_interval=cfg.mqtt.reconnect_interval,
        )

        antenna = AntennaSwitch(
            self._mqtt,
            self._bot,
            cfg.asset_dir,
            command_topic=cfg.mqtt.antenna_command_topic,
            result_topic=cfg.mqtt.antenna_result_topic,
        )
        antenna.register()

        if cfg.presence.enabled:
            relay = RelaySwitch(self._link, cfg.switch.address, cfg.switch.relay_channel)
            self._watcher = PresenceWatcher(
                relay,
                antenna,
                self._bot,
                settle_delay=cfg.presence.settle_delay,
                notify_on_first=cfg.presence.notify_on_first,
                occupant_field=cfg.presence.occupant_field,
            )
            self._mqtt.subscribe(cfg.mqtt.presence_topic, self._watcher.handle_message)
            await self._watcher.start()
        else:
            logger.info("Presence tracking disabled")

        await self._mqtt.start()
        if not await self._mqtt.wait_connected(cfg.mqtt.connect_timeout):
            logger.warning(
                "MQTT broker %s:%d not reachable yet, presence and antenna reports will wait",
                cfg.mqtt.host,
                cfg.mqtt.port,
            )

        self._rotator = RotatorController(
            self._link,
            self._bot,
            cfg.asset_dir,
            poll_interval=cfg.rotator.poll_interval,
            max_polls=cfg.rotator.max_polls,
        )

        self._dispatcher = CommandDispatcher(
            self._bot,
            self._rotator,
            main_rotator=RotatorDevice("rotor", cfg.rotator.main_address, cfg.rotator.main_image),
            loop_rotator=RotatorDevice("loop", cfg.rotator.loop_address, cfg.rotator.loop_image),
            antenna=antenna,
            link=self._link,
            watcher=self._watcher,
            antenna_list=cfg.antenna_list,
            flashes_url=cfg.flashes_url,
            flashes_link=cfg.flashes_link,
        )

        logger.info("Atlas Station ready")

    async def shutdown(self) -> None:
        """Clean up all components."""
        logger.info("Atlas Station shutting down...")

        if self._rotator:
            await self._rotator.shutdown()

        if self._watcher:
            await self._watcher.stop()

        if self._mqtt:
            await self._mqtt.stop()

        if self._link:
            await self._link.close()

        if self._bot:
            await self._bot.close()

        logger.info("Atlas Station stopped")

    async def _command_loop(self) -> None:
        """Dispatch chat commands sequentially in arrival order."""
        async for command in self._bot.commands():
            try:
                await self._dispatcher.dispatch(command)
            except Exception as e:
                logger.exception("Error handling command %r: %s", command.text, e)

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM."""
        try:
            await self.startup()

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._shutdown_event.set)

            commands = asyncio.create_task(self._command_loop())
            stop = asyncio.create_task(self._shutdown_event.wait())
            done, _ = await asyncio.wait(
                {commands, stop},
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in (commands, stop):
                if task not in done:
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
            if commands in done and commands.exception():
                raise commands.exception()

        finally:
            await self.shutdown()


def main() -> int:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Atlas Station relay")
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Log level (default: {settings.log_level})",
    )
    args = parser.parse_args()

    setup_logging(args.log_level)

    app = StationApplication()
    try:
        asyncio.run(app.run())
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
