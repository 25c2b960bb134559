from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from services.colors import DEFAULT_PALETTE, ColorAssigner, random_strategy, resolve_strategy
from services.series_store import DeviceSeriesStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _at(seconds: int) -> datetime:
    return T0 + timedelta(seconds=seconds)


def _store(capacity: int = 3) -> DeviceSeriesStore:
    return DeviceSeriesStore(ColorAssigner(), capacity=capacity)


def test_buffer_never_exceeds_capacity() -> None:
    store = _store(capacity=3)

    for second in range(10):
        store.insert("sensor-a", _at(second), float(second))
        assert len(store.get("sensor-a")) <= 3

    buffer = store.get("sensor-a")
    assert list(buffer.points) == [(_at(7), 7.0), (_at(8), 8.0), (_at(9), 9.0)]


def test_points_kept_in_arrival_order() -> None:
    store = _store(capacity=5)

    store.insert("sensor-a", _at(5), 1.0)
    store.insert("sensor-a", _at(1), 2.0)

    assert [point[0] for point in store.get("sensor-a").points] == [_at(5), _at(1)]


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_values_are_skipped(value: float) -> None:
    store = _store()

    store.insert("sensor-a", _at(0), value)

    assert store.get("sensor-a") is None
    assert store.is_empty()
    assert len(store.colors) == 0


def test_reset_clears_series_and_colors() -> None:
    store = _store()
    store.insert("sensor-a", _at(0), 1.0)
    store.insert("sensor-b", _at(0), 2.0)

    store.reset()

    assert store.is_empty()
    assert len(store) == 0
    assert len(store.colors) == 0
    store.insert("sensor-b", _at(1), 3.0)
    assert store.get("sensor-b").color_index == 0


def test_snapshot_is_read_only() -> None:
    store = _store()
    store.insert("sensor-a", _at(0), 1.0)

    snapshot = store.snapshot()

    with pytest.raises(TypeError):
        snapshot["sensor-b"] = snapshot["sensor-a"]  # type: ignore[index]


def test_deterministic_colors_follow_arrival_order() -> None:
    colors = ColorAssigner()
    devices = [f"sensor-{index}" for index in range(len(DEFAULT_PALETTE) + 2)]

    assigned = [colors.color_for(device) for device in devices]

    assert assigned == [index % len(DEFAULT_PALETTE) for index in range(len(devices))]


def test_colors_are_stable_for_the_session() -> None:
    colors = ColorAssigner(strategy=random_strategy)
    first = colors.color_for("sensor-a")

    for index in range(50):
        colors.color_for(f"other-{index}")

    assert colors.color_for("sensor-a") == first
    assert 0 <= first < len(DEFAULT_PALETTE)


def test_custom_strategy_is_injectable() -> None:
    colors = ColorAssigner(strategy=lambda _seen, _size: 4)

    assert colors.color_for("sensor-a") == 4
    assert colors.color(4).name == "magenta"


def test_unknown_strategy_rejected() -> None:
    with pytest.raises(ValueError):
        resolve_strategy("rainbow")
