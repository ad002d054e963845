"""
Communication module - MQTT transport and antenna switch.
"""

from .antenna import AntennaSwitch
from .mqtt import StationMQTT

__all__ = [
    "AntennaSwitch",
    "StationMQTT",
]
