"""Session-stable assignment of palette colours to devices."""

from __future__ import annotations

import secrets
from typing import Callable, Dict, Sequence

from models.chart import Color

DEFAULT_PALETTE: tuple[Color, ...] = (
    Color("black", "#000000"),
    Color("blue", "#0000ff"),
    Color("cyan", "#00ffff"),
    Color("green", "#00ff00"),
    Color("magenta", "#ff00ff"),
    Color("red", "#ff0000"),
    Color("yellow", "#ffff00"),
)

# Receives (number of devices already assigned, palette size), returns an index.
ColorStrategy = Callable[[int, int], int]


def deterministic_strategy(seen: int, palette_size: int) -> int:
    return seen % palette_size


def random_strategy(_seen: int, palette_size: int) -> int:
    return secrets.randbelow(palette_size)


_STRATEGIES: Dict[str, ColorStrategy] = {
    "deterministic": deterministic_strategy,
    "random": random_strategy,
}


def resolve_strategy(name: str) -> ColorStrategy:
    try:
        return _STRATEGIES[name]
    except KeyError as exc:
        raise ValueError(
            f"Unknown colour strategy {name!r}; expected one of {', '.join(_STRATEGIES)}."
        ) from exc


class ColorAssigner:
    """Maps each device to a palette index on first sight and never changes it."""

    def __init__(
        self,
        palette: Sequence[Color] = DEFAULT_PALETTE,
        strategy: ColorStrategy = deterministic_strategy,
    ) -> None:
        if not palette:
            raise ValueError("Colour palette must not be empty.")
        self.palette: tuple[Color, ...] = tuple(palette)
        self._strategy = strategy
        self._assigned: Dict[str, int] = {}

    def color_for(self, device: str) -> int:
        index = self._assigned.get(device)
        if index is None:
            index = self._strategy(len(self._assigned), len(self.palette)) % len(self.palette)
            self._assigned[device] = index
        return index

    def color(self, index: int) -> Color:
        return self.palette[index]

    def reset(self) -> None:
        self._assigned.clear()

    def __len__(self) -> int:
        return len(self._assigned)

    def __contains__(self, device: object) -> bool:
        return device in self._assigned
