"""Renderer-agnostic chart structures derived from the series store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from models.records import Point

WARMING = "warming"
COOLING = "cooling"


@dataclass(frozen=True)
class Color:
    name: str
    hex: str


@dataclass(frozen=True)
class ChartSeries:
    """One device's line: legend label, colour and points oldest first."""

    label: str
    color: Color
    points: List[Point] = field(default_factory=list)


@dataclass(frozen=True)
class ChartDataset:
    """Everything a renderer needs to draw the current window."""

    time_extent: Optional[Tuple[datetime, datetime]] = None
    series: List[ChartSeries] = field(default_factory=list)
    value_range: Tuple[float, float] = (-10.0, 40.0)

    @property
    def is_empty(self) -> bool:
        return self.time_extent is None


@dataclass(frozen=True)
class TrendReading:
    last_value: float
    running_average: float
    trend: str
