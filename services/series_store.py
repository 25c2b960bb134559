"""Per-device bounded history buffers."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Deque, Dict, Mapping, Optional

from models.records import Point
from services.colors import ColorAssigner


@dataclass
class SeriesBuffer:
    """Arrival-ordered points for one device, capped at ``capacity``."""

    color_index: int
    capacity: int
    points: Deque[Point] = field(init=False)

    def __post_init__(self) -> None:
        self.points = deque(maxlen=self.capacity)

    def append(self, timestamp: datetime, value: float) -> None:
        # deque(maxlen=...) drops exactly one point from the left when full.
        self.points.append((timestamp, value))

    @property
    def first(self) -> Optional[Point]:
        return self.points[0] if self.points else None

    @property
    def last(self) -> Optional[Point]:
        return self.points[-1] if self.points else None

    def __len__(self) -> int:
        return len(self.points)


class DeviceSeriesStore:
    """Owns one :class:`SeriesBuffer` per device for the current session.

    Points are appended in arrival order; out-of-order timestamps are kept
    where they land. The store never projects itself: callers re-project
    after each insert.
    """

    def __init__(self, colors: ColorAssigner, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError("Series capacity must be at least 1.")
        self.colors = colors
        self.capacity = capacity
        self._series: Dict[str, SeriesBuffer] = {}

    def insert(self, device: str, timestamp: datetime, value: float) -> None:
        if not math.isfinite(value):
            return
        buffer = self._series.get(device)
        if buffer is None:
            buffer = SeriesBuffer(
                color_index=self.colors.color_for(device),
                capacity=self.capacity,
            )
            self._series[device] = buffer
        buffer.append(timestamp, value)

    def get(self, device: str) -> Optional[SeriesBuffer]:
        return self._series.get(device)

    def snapshot(self) -> Mapping[str, SeriesBuffer]:
        return MappingProxyType(self._series)

    def reset(self) -> None:
        self._series.clear()
        self.colors.reset()

    def is_empty(self) -> bool:
        return not any(self._series.values())

    def point_count(self) -> int:
        return sum(len(buffer) for buffer in self._series.values())

    def __len__(self) -> int:
        return len(self._series)
