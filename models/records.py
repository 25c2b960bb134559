"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

Point = Tuple[datetime, float]


@dataclass(slots=True, frozen=True)
class TelemetryRecord:
    """A single validated temperature reading decoded from one message."""

    schema: str
    device: str
    timestamp: datetime
    value: float
