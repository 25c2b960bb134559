import inspect
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app import api as api_module
from app.main import create_app
from services.colors import ColorAssigner
from services.extractor import RecordExtractor
from services.projector import ChartProjector
from services.series_store import DeviceSeriesStore
from services.session import TelemetrySession, build_default_session
from services.transport import PushTransport
from services.trend import TrendTracker

SCHEMA = "urn:drogue:iot:temperature"


def _event(device: str, temp, second: int) -> dict:
    return {
        "dataschema": SCHEMA,
        "device": device,
        "time": f"2024-01-01T00:00:{second:02d}Z",
        "data": {"temp": temp},
    }


@pytest.fixture
def api_client(monkeypatch) -> Iterator[TestClient]:
    sessions: list[TelemetrySession] = []

    def build_test_session() -> TelemetrySession:
        if not sessions:
            sessions.append(
                TelemetrySession(
                    extractor=RecordExtractor(schema=SCHEMA),
                    store=DeviceSeriesStore(ColorAssigner(), capacity=3),
                    projector=ChartProjector(),
                    trend=TrendTracker(window=5),
                    transport=PushTransport(),
                    endpoint_url="wss://example.test/temperature",
                )
            )
        return sessions[0]

    def cache_clear() -> None:
        while sessions:
            sessions.pop().shutdown()

    build_test_session.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_session", build_test_session)
    monkeypatch.setattr("app.api.build_default_session", build_test_session)

    app = create_app()
    with TestClient(app) as client:
        yield client

    cache_clear()


def test_lifespan_shuts_down_session_and_clears_cache() -> None:
    app = create_app()

    with TestClient(app) as client:
        session_during = build_default_session()
        client.post("/session/connect")
        assert session_during.status().state.value == "connected"

    assert session_during.status().state.value == "disconnected"
    session_after = build_default_session()
    try:
        assert session_after is not session_during
    finally:
        session_after.shutdown()
        build_default_session.cache_clear()


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_events_rejected_until_connected(api_client: TestClient) -> None:
    response = api_client.post("/events", json=_event("sensor-a", 20, 0))

    assert response.status_code == 409


def test_connect_ingest_and_chart(api_client: TestClient) -> None:
    connected = api_client.post("/session/connect").json()
    assert connected["state"] == "connected"

    for second in range(5):
        response = api_client.post("/events", json=_event("sensor-a", second, second))
        assert response.status_code == 202
        assert response.json()["accepted"] is True
    api_client.post("/events", json=_event("sensor-b", "7.5", 10))

    chart = api_client.get("/chart").json()
    labels = [series["label"] for series in chart["series"]]
    assert labels == ["sensor-a", "sensor-b"]
    sensor_a = chart["series"][0]
    assert [point["value"] for point in sensor_a["points"]] == [2.0, 3.0, 4.0]
    assert sensor_a["color_name"] == "black"
    assert chart["series"][1]["color"] == "#0000ff"
    assert chart["time_extent"][0].startswith("2024-01-01T00:00:02")
    assert chart["time_extent"][1].startswith("2024-01-01T00:00:10")
    assert chart["value_range"] == [-10.0, 40.0]

    status = api_client.get("/session").json()
    assert status["events_received"] == 6
    assert status["series_count"] == 2
    assert status["point_count"] == 4


def test_rejected_event_reports_reason(api_client: TestClient) -> None:
    api_client.post("/session/connect")

    payload = _event("sensor-a", {"nested": 1}, 0)
    response = api_client.post("/events", json=payload)

    assert response.status_code == 202
    assert response.json()["accepted"] is False
    assert response.json()["reason"] == "value_type_error"
    assert api_client.get("/chart").json()["time_extent"] is None


def test_trend_endpoint(api_client: TestClient) -> None:
    api_client.post("/session/connect")
    assert api_client.get("/trend").status_code == 404

    api_client.post("/events", json=_event("sensor-a", 10, 0))
    api_client.post("/events", json=_event("sensor-a", 20, 1))

    trend = api_client.get("/trend").json()
    assert trend == {"last_value": 20.0, "running_average": 15.0, "trend": "warming"}


def test_endpoint_update_and_validation(api_client: TestClient) -> None:
    response = api_client.put("/session/endpoint", json={"endpoint_url": "wss://example.test/new"})
    assert response.status_code == 200
    assert response.json()["endpoint_url"] == "wss://example.test/new"

    blank = api_client.put("/session/endpoint", json={"endpoint_url": "  "})
    assert blank.status_code == 422

    connected = api_client.post("/session/connect", json={"endpoint_url": "wss://example.test/other"})
    assert connected.json()["endpoint_url"] == "wss://example.test/other"


def test_disconnect_keeps_chart(api_client: TestClient) -> None:
    api_client.post("/session/connect")
    api_client.post("/events", json=_event("sensor-a", 21, 0))

    status = api_client.post("/session/disconnect").json()

    assert status["state"] == "disconnected"
    assert len(api_client.get("/chart").json()["series"]) == 1


def test_failing_subscriber_still_accepts_event(api_client: TestClient) -> None:
    def explode(dataset) -> None:
        raise RuntimeError("subscriber failed")

    api_module.get_session().subscribe(explode)
    api_client.post("/session/connect")

    response = api_client.post("/events", json=_event("sensor-a", 20, 0))

    assert response.status_code == 202
    assert response.json()["accepted"] is True
    assert api_client.get("/session").json()["point_count"] == 1


def test_session_routes_run_off_the_event_loop(api_client: TestClient) -> None:
    lock_routes = {"/session", "/session/connect", "/session/disconnect", "/events", "/chart", "/trend"}
    endpoints = {
        route.path: route.endpoint
        for route in api_client.app.routes
        if getattr(route, "path", None) in lock_routes
    }

    assert set(endpoints) == lock_routes
    assert not any(inspect.iscoroutinefunction(endpoint) for endpoint in endpoints.values())


def test_websocket_ingest_uses_threadpool(api_client: TestClient, monkeypatch) -> None:
    calls: list[str] = []
    original = api_module.run_in_threadpool

    async def recording(func, *args, **kwargs):
        calls.append(func.__name__)
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(api_module, "run_in_threadpool", recording)
    api_client.post("/session/connect")

    with api_client.websocket_connect("/ws/events") as websocket:
        websocket.send_text("not json")
        websocket.receive_json()

    assert calls == ["on_data"]


def test_websocket_ingest(api_client: TestClient) -> None:
    api_client.post("/session/connect")

    with api_client.websocket_connect("/ws/events") as websocket:
        websocket.send_text('{"dataschema": "urn:drogue:iot:temperature", "device": "ws", '
                            '"time": "2024-01-01T00:00:00Z", "data": {"temp": "18"}}')
        accepted = websocket.receive_json()
        websocket.send_text("not json")
        rejected = websocket.receive_json()

    assert accepted == {"accepted": True, "reason": None, "detail": None}
    assert rejected["accepted"] is False
    assert rejected["reason"] == "malformed_payload"
    assert api_client.get("/chart").json()["series"][0]["label"] == "ws"
