"""
Presence module - radio occupancy tracking and receiver switching.
"""

from .models import PresenceReport
from .policy import ACTIVE_ANTENNA, IDLE_ANTENNA, SwitchDecision, decide
from .watcher import PresenceWatcher

__all__ = [
    "PresenceReport",
    "ACTIVE_ANTENNA",
    "IDLE_ANTENNA",
    "SwitchDecision",
    "decide",
    "PresenceWatcher",
]
