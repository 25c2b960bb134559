"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from models.chart import ChartDataset, TrendReading


class ConnectionState(str, Enum):
    """Session connection lifecycle states."""

    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class SessionStatus(BaseModel):
    """Snapshot of the current session."""

    state: ConnectionState
    endpoint_url: str
    events_received: int = Field(0, ge=0, description="Schema-matching messages since connect.")
    series_count: int = Field(0, ge=0)
    point_count: int = Field(0, ge=0)
    rejected: Dict[str, int] = Field(default_factory=dict)
    last_error: Optional[str] = None


class EndpointRequest(BaseModel):
    endpoint_url: str = Field(..., description="Streaming endpoint to consume events from.")

    @field_validator("endpoint_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("endpoint_url must not be blank")
        return candidate


class ConnectRequest(BaseModel):
    endpoint_url: Optional[str] = Field(
        default=None, description="Overrides the configured endpoint before connecting."
    )


class IngestResponse(BaseModel):
    """Outcome of delivering one payload."""

    accepted: bool
    reason: Optional[str] = None
    detail: Optional[str] = None


class ChartPoint(BaseModel):
    timestamp: datetime
    value: float


class ChartSeriesSchema(BaseModel):
    label: str
    color: str
    color_name: str
    points: List[ChartPoint] = Field(default_factory=list)


class ChartDatasetSchema(BaseModel):
    """Renderer-agnostic dataset: time extent plus coloured series."""

    time_extent: Optional[Tuple[datetime, datetime]] = None
    value_range: Tuple[float, float]
    series: List[ChartSeriesSchema] = Field(default_factory=list)

    @classmethod
    def from_dataset(cls, dataset: ChartDataset) -> "ChartDatasetSchema":
        return cls(
            time_extent=dataset.time_extent,
            value_range=dataset.value_range,
            series=[
                ChartSeriesSchema(
                    label=series.label,
                    color=series.color.hex,
                    color_name=series.color.name,
                    points=[
                        ChartPoint(timestamp=timestamp, value=value)
                        for timestamp, value in series.points
                    ],
                )
                for series in dataset.series
            ],
        )


class TrendSchema(BaseModel):
    last_value: float
    running_average: float
    trend: str

    @classmethod
    def from_reading(cls, reading: TrendReading) -> "TrendSchema":
        return cls(
            last_value=reading.last_value,
            running_average=reading.running_average,
            trend=reading.trend,
        )
