"""
Presence report model.

Radio discovery documents are JSON objects; the occupant field names the
client(s) currently using the radio and is empty when it is idle.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

logger = logging.getLogger("atlas.station.presence.models")


def _lookup(document: dict[str, Any], key: str) -> Optional[Any]:
    """Case-insensitive key lookup."""
    if key in document:
        return document[key]
    wanted = key.lower()
    for name, value in document.items():
        if isinstance(name, str) and name.lower() == wanted:
            return value
    return None


@dataclass
class PresenceReport:
    """A single presence report for the shared radio."""
    occupant: str
    observed_at: datetime = field(default_factory=datetime.now)
    serial: str = ""
    status: str = ""
    host: str = ""

    @classmethod
    def from_document(
        cls,
        document: dict[str, Any],
        occupant_field: str = "inuse_ip",
        observed_at: Optional[datetime] = None,
    ) -> Optional["PresenceReport"]:
        """Build a report from a decoded document, or None without an occupant field."""
        occupant = _lookup(document, occupant_field)
        if occupant is None:
            return None

        return cls(
            occupant=str(occupant).upper(),
            observed_at=observed_at or datetime.now(),
            serial=str(_lookup(document, "serial") or ""),
            status=str(_lookup(document, "status") or ""),
            host=str(_lookup(document, "inuse_host") or ""),
        )

    @classmethod
    def from_payload(
        cls,
        payload: bytes,
        occupant_field: str = "inuse_ip",
    ) -> Optional["PresenceReport"]:
        """
        Decode a raw transport payload.

        Returns:
            The report, or None if the payload is not a usable document
        """
        try:
            document = json.loads(payload.decode())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug("Invalid presence payload: %s", e)
            return None

        if not isinstance(document, dict):
            logger.debug("Presence payload is not an object: %r", document)
            return None

        report = cls.from_document(document, occupant_field)
        if report is None:
            logger.debug("Presence payload without %s field", occupant_field)
        return report
