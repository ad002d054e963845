"""
Telegram Bot API adapter.

Implements NotificationSink for a single configured chat and exposes the
inbound command stream through getUpdates long polling.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from .protocols import InboundCommand, NotificationSink

logger = logging.getLogger("atlas.station.notify.telegram")


class TelegramBot(NotificationSink):
    """
    Telegram bot bound to one chat.

    Provides:
    - sendMessage / sendPhoto delivery to the configured chat
    - Inbound command stream filtered to the configured chat
    """

    def __init__(
        self,
        token: str,
        chat_id: int,
        api_url: str = "https://api.telegram.org",
        poll_timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the bot.

        Args:
            token: Bot API token
            chat_id: The only chat this bot talks to
            api_url: Bot API base URL
            poll_timeout: getUpdates long polling timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.chat_id = chat_id
        self.poll_timeout = poll_timeout
        self._client = httpx.AsyncClient(
            base_url=f"{api_url.rstrip('/')}/bot{token}",
            timeout=poll_timeout + 10.0,
            transport=transport,
        )
        self._offset: Optional[int] = None
        self.username: Optional[str] = None

    async def connect(self) -> None:
        """Verify the token and remember the bot's username."""
        result = await self._call("getMe")
        if result is None:
            raise RuntimeError("Telegram getMe failed, check the bot token")
        self.username = result.get("username")
        logger.info("Authorized on account %s", self.username)

    async def close(self) -> None:
        """Release the HTTP client."""
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        data: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Any]:
        """Invoke a Bot API method and return its result, or None on failure."""
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            if files:
                resp = await self._client.post(f"/{method}", data=data, files=files, **kwargs)
            else:
                resp = await self._client.post(f"/{method}", json=data or {}, **kwargs)
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Telegram %s failed: %s", method, e)
            return None

        if not payload.get("ok"):
            logger.warning(
                "Telegram %s rejected: %s",
                method,
                payload.get("description", resp.status_code),
            )
            return None
        return payload.get("result")

    async def send_text(self, text: str, reply_to: Optional[int] = None) -> bool:
        data: dict[str, Any] = {"chat_id": self.chat_id, "text": text}
        if reply_to is not None:
            data["reply_to_message_id"] = reply_to
        return await self._call("sendMessage", data) is not None

    async def send_image(
        self,
        data: bytes,
        caption: str,
        reply_to: Optional[int] = None,
        filename: str = "image.jpg",
    ) -> bool:
        form: dict[str, Any] = {"chat_id": str(self.chat_id), "caption": caption}
        if reply_to is not None:
            form["reply_to_message_id"] = str(reply_to)
        files = {"photo": (filename, data)}
        return await self._call("sendPhoto", form, files=files) is not None

    async def get_updates(self, timeout: int = 0) -> Optional[list[dict]]:
        """
        Fetch pending updates after the last acknowledged one.

        Returns:
            List of updates (possibly empty), or None if the call failed
        """
        data: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if self._offset is not None:
            data["offset"] = self._offset
        updates = await self._call("getUpdates", data, timeout=timeout + 10.0)
        if updates:
            self._offset = max(u["update_id"] for u in updates) + 1
        return updates

    async def drain(self) -> int:
        """Acknowledge and discard everything queued while offline."""
        skipped = 0
        while True:
            updates = await self.get_updates(timeout=0)
            if not updates:
                break
            skipped += len(updates)
        if skipped:
            logger.info("Skipped %d queued updates", skipped)
        return skipped

    def _to_command(self, update: dict) -> Optional[InboundCommand]:
        message = update.get("message")
        if not message or not message.get("text"):
            return None

        chat_id = message.get("chat", {}).get("id")
        if chat_id != self.chat_id:
            logger.debug("Ignoring message from chat %s", chat_id)
            return None

        return InboundCommand(
            message_id=message["message_id"],
            chat_id=chat_id,
            text=message["text"],
            sender=message.get("from", {}).get("username"),
        )

    async def commands(self, retry_delay: float = 5.0) -> AsyncIterator[InboundCommand]:
        """Yield commands from the configured chat in arrival order."""
        while True:
            updates = await self.get_updates(timeout=self.poll_timeout)
            if updates is None:
                await asyncio.sleep(retry_delay)
                continue
            for update in updates:
                command = self._to_command(update)
                if command is not None:
                    yield command
