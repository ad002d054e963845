"""
Receiver switch policy.

Maps the radio occupant to the antenna path, relay state and operator
message. Pure: no I/O, no state.
"""

from dataclasses import dataclass

ACTIVE_ANTENNA = "1a"
IDLE_ANTENNA = "1b"


@dataclass(frozen=True)
class SwitchDecision:
    """What to do for a given radio occupant."""
    antenna_code: str
    relay_on: bool
    message: str


def decide(occupant: str) -> SwitchDecision:
    """
    Decide the switch state for the current radio occupant.

    Any occupant value longer than one character means the radio is in
    use: route the antenna to the radio and disable the public receiver.
    """
    if len(occupant) > 1:
        return SwitchDecision(
            antenna_code=ACTIVE_ANTENNA,
            relay_on=True,
            message=f"FLEX ACTIVE (Kiwi disabled) current IP(s) connected: {occupant}",
        )

    return SwitchDecision(
        antenna_code=IDLE_ANTENNA,
        relay_on=False,
        message="PUBLIC KIWI IS ACTIVE, no user is connected to FLEX at this moment",
    )
