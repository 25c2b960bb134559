"""Session orchestration: connection state, ingestion and projection."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from threading import RLock
from typing import Callable, List, Optional

from app.schemas import ConnectionState, SessionStatus
from exceptions import (
    MalformedPayload,
    NonFiniteValue,
    NotConnectedError,
    RecordRejected,
    RejectReason,
    SchemaMismatch,
    TransportError,
)
from models.chart import ChartDataset, TrendReading
from models.records import TelemetryRecord
from services.colors import ColorAssigner, resolve_strategy
from services.extractor import RawPayload, RecordExtractor
from services.projector import ChartProjector
from services.series_store import DeviceSeriesStore
from services.transport import HttpStreamTransport, PushTransport, Transport, TransportHandle
from services.trend import TrendTracker
from settings import get_settings

logger = logging.getLogger(__name__)

DatasetListener = Callable[[ChartDataset], None]


@dataclass(frozen=True)
class IngestOutcome:
    accepted: bool
    record: Optional[TelemetryRecord] = None
    reason: Optional[RejectReason] = None
    detail: Optional[str] = None


class TelemetrySession:
    """Owns all per-session state and reacts to one event at a time.

    States move ``disconnected -> connecting -> connected``. Every handler
    runs under a single re-entrant lock so transport callbacks never
    interleave with control requests.
    """

    def __init__(
        self,
        extractor: RecordExtractor,
        store: DeviceSeriesStore,
        projector: ChartProjector,
        trend: TrendTracker,
        transport: Transport,
        endpoint_url: str,
        auto_reconnect: bool = True,
    ) -> None:
        self.extractor = extractor
        self.store = store
        self.projector = projector
        self.trend_tracker = trend
        self.transport = transport
        self.endpoint_url = endpoint_url
        self.auto_reconnect = auto_reconnect
        self.state = ConnectionState.disconnected
        self.events_received = 0
        self.rejected: Counter[str] = Counter()
        self.last_error: Optional[str] = None
        self._handle: Optional[TransportHandle] = None
        self._dataset: Optional[ChartDataset] = None
        self._listeners: List[DatasetListener] = []
        self._lock = RLock()

    # Control surface

    def connect(self, endpoint_url: Optional[str] = None) -> ConnectionState:
        with self._lock:
            if endpoint_url is not None:
                self.update_endpoint(endpoint_url)
            self._close_handle()
            self._reset()
            self.state = ConnectionState.connecting
            logger.info(
                "Connecting",
                extra={"endpoint": self.endpoint_url, "state": self.state.value},
            )
            try:
                self._handle = self.transport.open(self.endpoint_url, self)
            except TransportError as exc:
                self._handle = None
                self.state = ConnectionState.disconnected
                self.last_error = str(exc)
                logger.error(
                    "Connection failed: %s",
                    exc,
                    extra={"endpoint": self.endpoint_url, "state": self.state.value},
                )
            return self.state

    def disconnect(self) -> ConnectionState:
        with self._lock:
            self._close_handle()
            self.state = ConnectionState.disconnected
            logger.info("Disconnected", extra={"state": self.state.value})
            return self.state

    def update_endpoint(self, url: str) -> None:
        candidate = url.strip()
        if not candidate:
            raise ValueError("Endpoint URL must not be blank.")
        with self._lock:
            self.endpoint_url = candidate

    def subscribe(self, listener: DatasetListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def shutdown(self) -> None:
        self.disconnect()
        self.transport.shutdown()

    # Transport callbacks

    def connection_established(self) -> None:
        with self._lock:
            if self.state is not ConnectionState.connecting:
                return
            self.state = ConnectionState.connected
            self.last_error = None
            logger.info(
                "Connected",
                extra={"endpoint": self.endpoint_url, "state": self.state.value},
            )

    def on_data(self, payload: RawPayload) -> IngestOutcome:
        with self._lock:
            if self.state is not ConnectionState.connected:
                raise NotConnectedError(
                    f"Session is {self.state.value}; connect before delivering data."
                )
            try:
                record = self.extractor.extract(payload)
            except SchemaMismatch as exc:
                self.rejected[exc.reason.value] += 1
                logger.debug("Ignoring foreign schema", extra={"reason": exc.reason.value})
                return IngestOutcome(accepted=False, reason=exc.reason, detail=exc.detail)
            except MalformedPayload as exc:
                return self._reject(exc)
            except RecordRejected as exc:
                # The schema matched; only the record body was bad.
                self.events_received += 1
                return self._reject(exc)

            self.events_received += 1
            if not math.isfinite(record.value):
                return self._reject(NonFiniteValue(f"value {record.value!r} is not finite"), record)

            self.store.insert(record.device, record.timestamp, record.value)
            self.trend_tracker.observe(record.value)
            self._publish(self.projector.project(self.store))
            logger.debug(
                "Accepted reading",
                extra={"device": record.device, "point_count": len(self.store.get(record.device))},
            )
            return IngestOutcome(accepted=True, record=record)

    def on_closed(self) -> None:
        with self._lock:
            if self.state is ConnectionState.disconnected:
                return
            logger.warning(
                "Connection closed",
                extra={"endpoint": self.endpoint_url, "state": self.state.value},
            )
            self._handle = None
            if self.auto_reconnect:
                self.connect()
            else:
                self.state = ConnectionState.disconnected

    def on_error(self, error: Exception) -> None:
        with self._lock:
            self.last_error = str(error)
            logger.error(
                "Transport error: %s",
                error,
                extra={"endpoint": self.endpoint_url, "state": self.state.value},
            )

    # Output surface

    def dataset(self) -> ChartDataset:
        with self._lock:
            if self._dataset is None:
                self._dataset = self.projector.project(self.store)
            return self._dataset

    def trend(self) -> Optional[TrendReading]:
        with self._lock:
            return self.trend_tracker.latest

    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus(
                state=self.state,
                endpoint_url=self.endpoint_url,
                events_received=self.events_received,
                series_count=len(self.store),
                point_count=self.store.point_count(),
                rejected=dict(self.rejected),
                last_error=self.last_error,
            )

    def _reject(
        self, exc: RecordRejected, record: Optional[TelemetryRecord] = None
    ) -> IngestOutcome:
        self.rejected[exc.reason.value] += 1
        logger.warning(
            "Dropped record: %s",
            exc.detail or exc.reason.value,
            extra={"reason": exc.reason.value, "device": record.device if record else None},
        )
        return IngestOutcome(accepted=False, record=record, reason=exc.reason, detail=exc.detail)

    def _publish(self, dataset: ChartDataset) -> None:
        self._dataset = dataset
        for listener in list(self._listeners):
            try:
                listener(dataset)
            except Exception:
                logger.exception(
                    "Dataset subscriber failed",
                    extra={"series_count": len(dataset.series)},
                )

    def _reset(self) -> None:
        self.store.reset()
        self.trend_tracker.reset()
        self.events_received = 0
        self.rejected.clear()
        self._dataset = None

    def _close_handle(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


def build_transport(name: str) -> Transport:
    if name == "http-stream":
        return HttpStreamTransport()
    return PushTransport()


@lru_cache
def build_default_session() -> TelemetrySession:
    """Factory that wires a session from environment settings."""
    settings = get_settings()
    colors = ColorAssigner(strategy=resolve_strategy(settings.color_strategy))
    return TelemetrySession(
        extractor=RecordExtractor(schema=settings.schema),
        store=DeviceSeriesStore(colors, capacity=settings.series_capacity),
        projector=ChartProjector(value_range=(settings.value_min, settings.value_max)),
        trend=TrendTracker(window=settings.average_window),
        transport=build_transport(settings.transport),
        endpoint_url=settings.endpoint_url,
        auto_reconnect=settings.auto_reconnect,
    )
