"""
Devices module - HTTP device link, rotators and relay switch.
"""

from .link import DeviceLink, device_url
from .rotator import (
    UNKNOWN_DEGREES,
    InvalidAngleError,
    RotationInProgressError,
    RotationPhase,
    RotationRejected,
    RotatorController,
    RotatorDevice,
    is_valid_angle,
    parse_position,
)
from .switch import RelaySwitch

__all__ = [
    "DeviceLink",
    "device_url",
    "UNKNOWN_DEGREES",
    "InvalidAngleError",
    "RotationInProgressError",
    "RotationPhase",
    "RotationRejected",
    "RotatorController",
    "RotatorDevice",
    "is_valid_angle",
    "parse_position",
    "RelaySwitch",
]
