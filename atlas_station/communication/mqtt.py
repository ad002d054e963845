"""
MQTT transport for the station.

One broker connection carries the radio presence documents and the
antenna switch command/result topics. Incoming messages are routed to
handlers registered per topic filter.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

import aiomqtt

logger = logging.getLogger("atlas.station.communication.mqtt")

# (topic, payload)
MessageHandler = Callable[[str, bytes], Awaitable[None]]


def _payload_bytes(payload: Union[bytes, bytearray, str, int, float, None]) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    return str(payload).encode()


class StationMQTT:
    """
    Reconnecting MQTT client.

    Subscriptions are (re)established on every connect; handler errors
    are logged and never stop the message loop.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "telegram_bot",
        reconnect_interval: int = 5,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.client_id = client_id
        self.reconnect_interval = reconnect_interval

        self._handlers: list[tuple[str, MessageHandler]] = []
        self._client: Optional[aiomqtt.Client] = None
        self._connected = asyncio.Event()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, topic_filter: str, handler: MessageHandler) -> None:
        """Register a handler; takes effect on the next (re)connect."""
        self._handlers.append((topic_filter, handler))

    async def start(self) -> None:
        """Start the connection loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info("MQTT transport started (broker=%s:%d)", self.host, self.port)

    async def wait_connected(self, timeout: float) -> bool:
        """Wait for the first successful connection."""
        try:
            await asyncio.wait_for(self._connected.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def stop(self) -> None:
        """Stop the connection loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("MQTT transport stopped")

    async def _run(self) -> None:
        """Main loop - connect, subscribe and dispatch messages."""
        while self._running:
            try:
                async with aiomqtt.Client(
                    hostname=self.host,
                    port=self.port,
                    username=self.username,
                    password=self.password,
                    identifier=self.client_id,
                ) as client:
                    self._client = client
                    for topic_filter, _ in self._handlers:
                        await client.subscribe(topic_filter)
                        logger.info("Subscribed to %s", topic_filter)
                    self._connected.set()

                    async for message in client.messages:
                        await self._dispatch(message)

            except aiomqtt.MqttError as e:
                logger.error("MQTT connection error: %s", e)
            except Exception as e:
                logger.exception("MQTT transport error: %s", e)
            finally:
                self._client = None
                self._connected.clear()

            if self._running:
                logger.info("Reconnecting in %d seconds...", self.reconnect_interval)
                await asyncio.sleep(self.reconnect_interval)

    async def _dispatch(self, message: aiomqtt.Message) -> None:
        topic = str(message.topic)
        payload = _payload_bytes(message.payload)

        for topic_filter, handler in self._handlers:
            if not message.topic.matches(topic_filter):
                continue
            try:
                await handler(topic, payload)
            except Exception as e:
                logger.warning("Error handling message on %s: %s", topic, e)

    async def publish(self, topic: str, payload: str, qos: int = 0) -> bool:
        """
        Publish a message.

        Returns:
            True if handed to the broker connection
        """
        client = self._client
        if client is None or not self.is_connected:
            logger.warning("MQTT not connected, dropping publish to %s", topic)
            return False

        try:
            await client.publish(topic, payload, qos=qos)
            logger.debug("Published %r to %s", payload, topic)
            return True
        except aiomqtt.MqttError as e:
            logger.warning("Failed to publish to %s: %s", topic, e)
            return False
