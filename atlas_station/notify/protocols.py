"""
Notification channel interface.

Defines the outbound contract the station core uses to report to the
operator chat. Implementations address a single fixed recipient.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class InboundCommand:
    """A command message received from the operator chat."""
    message_id: int
    chat_id: int
    text: str
    sender: Optional[str] = None
    received_at: datetime = field(default_factory=datetime.now)

    @property
    def tokens(self) -> list[str]:
        """Whitespace separated command tokens."""
        return self.text.split()

    @property
    def command(self) -> str:
        """Command name without a trailing @botname suffix."""
        tokens = self.tokens
        if not tokens:
            return ""
        return tokens[0].split("@", 1)[0].lower()


class NotificationSink(ABC):
    """
    Abstract outbound notification channel.

    Sends never raise: delivery failures are logged by the implementation
    and reported through the return value.
    """

    @abstractmethod
    async def send_text(self, text: str, reply_to: Optional[int] = None) -> bool:
        """
        Send a text message.

        Args:
            text: Message body
            reply_to: Inbound message ID this replies to

        Returns:
            True if delivered
        """
        ...

    @abstractmethod
    async def send_image(
        self,
        data: bytes,
        caption: str,
        reply_to: Optional[int] = None,
        filename: str = "image.jpg",
    ) -> bool:
        """
        Send an image with a caption.

        Args:
            data: Encoded image bytes
            caption: Caption shown with the image
            reply_to: Inbound message ID this replies to
            filename: File name presented to the recipient

        Returns:
            True if delivered
        """
        ...
