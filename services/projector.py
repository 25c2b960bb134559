"""Projection of the series store into a chart-ready dataset."""

from __future__ import annotations

from datetime import datetime
from typing import List, Mapping, Optional, Tuple

from models.chart import ChartDataset, ChartSeries
from services.colors import ColorAssigner
from services.series_store import DeviceSeriesStore, SeriesBuffer


class ChartProjector:
    """Pure reduction component that can be unit tested in isolation."""

    def __init__(self, value_range: Tuple[float, float] = (-10.0, 40.0)) -> None:
        self.value_range = value_range

    def project(self, store: DeviceSeriesStore) -> ChartDataset:
        return self.project_series(store.snapshot(), store.colors)

    def project_series(
        self, snapshot: Mapping[str, SeriesBuffer], colors: ColorAssigner
    ) -> ChartDataset:
        first: Optional[datetime] = None
        last: Optional[datetime] = None
        series: List[ChartSeries] = []

        for device, buffer in snapshot.items():
            if not buffer:
                continue
            start = buffer.points[0][0]
            end = buffer.points[-1][0]
            # Outer bound: earliest first point, latest last point.
            if first is None or start < first:
                first = start
            if last is None or end > last:
                last = end
            series.append(
                ChartSeries(
                    label=device,
                    color=colors.color(buffer.color_index),
                    points=list(buffer.points),
                )
            )

        if first is None or last is None:
            return ChartDataset(value_range=self.value_range)
        return ChartDataset(time_extent=(first, last), series=series, value_range=self.value_range)
