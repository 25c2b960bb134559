"""Fixed-capacity running mean over a single scalar stream."""

from __future__ import annotations

from typing import List


class MovingAverage:
    """Circular accumulator returning the mean of the last ``capacity`` values.

    Until the ring has wrapped, the mean is taken over the samples written so
    far rather than over the full capacity.
    """

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 1:
            raise ValueError("MovingAverage capacity must be at least 1.")
        self.capacity = capacity
        self._ring: List[float] = [0.0] * capacity
        self._write_index = 0
        self._filled = False

    def add(self, value: float) -> float:
        self._ring[self._write_index] = value
        self._write_index = (self._write_index + 1) % self.capacity
        if self._write_index == 0:
            self._filled = True
        return self.average()

    def last(self) -> float:
        if not len(self):
            return 0.0
        return self._ring[(self._write_index - 1) % self.capacity]

    def average(self) -> float:
        count = len(self)
        if not count:
            return 0.0
        return sum(self._ring[:count]) / count

    def reset(self) -> None:
        self._ring = [0.0] * self.capacity
        self._write_index = 0
        self._filled = False

    def __len__(self) -> int:
        return self.capacity if self._filled else self._write_index
