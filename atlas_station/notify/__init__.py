"""
Notify module - operator chat channel.
"""

from .protocols import InboundCommand, NotificationSink
from .telegram import TelegramBot

__all__ = [
    "InboundCommand",
    "NotificationSink",
    "TelegramBot",
]
