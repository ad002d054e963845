"""
Atlas Station - notification and remote-control relay for a radio station.

Watches the shared radio's "in use" state, switches the receiver relay and
antenna path accordingly, and lets operators query and drive the rotators
from a Telegram chat.

Architecture:
- devices/: HTTP device link, rotator state machine, relay switch
- presence/: presence reports, switch policy, debounced watcher
- communication/: MQTT transport and antenna switch
- notify/: notification sink interface and Telegram adapter
- commands.py: operator chat commands
"""

__version__ = "0.1.0"

from .config import settings, StationConfig
from .main import StationApplication, main

__all__ = [
    "settings",
    "StationConfig",
    "StationApplication",
    "main",
]
