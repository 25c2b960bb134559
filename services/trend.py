"""Single-series running average and warming/cooling trend."""

from __future__ import annotations

from typing import Optional

from models.chart import COOLING, WARMING, TrendReading
from services.moving_average import MovingAverage


def trend_label(previous: float, current: float) -> str:
    """Strictly greater is warming; equal averages count as cooling."""
    return WARMING if current > previous else COOLING


class TrendTracker:
    def __init__(self, window: int = 5) -> None:
        self.average = MovingAverage(window)
        self.latest: Optional[TrendReading] = None

    def observe(self, value: float) -> TrendReading:
        current = self.average.add(value)
        previous = self.latest.running_average if self.latest is not None else current
        self.latest = TrendReading(
            last_value=self.average.last(),
            running_average=current,
            trend=trend_label(previous, current),
        )
        return self.latest

    def reset(self) -> None:
        self.average.reset()
        self.latest = None
