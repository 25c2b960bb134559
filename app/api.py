"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from app.schemas import (
    ChartDatasetSchema,
    ConnectRequest,
    EndpointRequest,
    IngestResponse,
    SessionStatus,
    TrendSchema,
)
from exceptions import NotConnectedError
from services.session import IngestOutcome, TelemetrySession, build_default_session

router = APIRouter()


def get_session() -> TelemetrySession:
    return build_default_session()


def _to_response(outcome: IngestOutcome) -> IngestResponse:
    return IngestResponse(
        accepted=outcome.accepted,
        reason=outcome.reason.value if outcome.reason else None,
        detail=outcome.detail or None,
    )


@router.get(
    "/session",
    response_model=SessionStatus,
    summary="Current connection state and ingestion counters.",
)
def get_session_status(
    session: TelemetrySession = Depends(get_session),
) -> SessionStatus:
    return session.status()


@router.post(
    "/session/connect",
    response_model=SessionStatus,
    summary="Reset buffered state and (re)connect to the streaming endpoint.",
)
def connect_session(
    request: ConnectRequest | None = None,
    session: TelemetrySession = Depends(get_session),
) -> SessionStatus:
    endpoint_url = request.endpoint_url if request is not None else None
    try:
        session.connect(endpoint_url)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return session.status()


@router.post(
    "/session/disconnect",
    response_model=SessionStatus,
    summary="Close the streaming connection; buffered data stays until the next connect.",
)
def disconnect_session(
    session: TelemetrySession = Depends(get_session),
) -> SessionStatus:
    session.disconnect()
    return session.status()


@router.put(
    "/session/endpoint",
    response_model=SessionStatus,
    summary="Change the endpoint used by the next connect.",
)
def update_endpoint(
    request: EndpointRequest,
    session: TelemetrySession = Depends(get_session),
) -> SessionStatus:
    session.update_endpoint(request.endpoint_url)
    return session.status()


@router.post(
    "/events",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=IngestResponse,
    summary="Deliver one telemetry payload to the session.",
)
def ingest_event(
    payload: Dict[str, Any] = Body(..., description="Telemetry event as a JSON object."),
    session: TelemetrySession = Depends(get_session),
) -> IngestResponse:
    try:
        outcome = session.on_data(payload)
    except NotConnectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return _to_response(outcome)


@router.websocket("/ws/events")
async def ingest_stream(
    websocket: WebSocket,
    session: TelemetrySession = Depends(get_session),
) -> None:
    await websocket.accept()
    try:
        while True:
            message = await websocket.receive_text()
            try:
                outcome = await run_in_threadpool(session.on_data, message)
            except NotConnectedError as exc:
                await websocket.close(code=1013, reason=str(exc))
                return
            await websocket.send_json(_to_response(outcome).model_dump(mode="json"))
    except WebSocketDisconnect:
        return


@router.get(
    "/chart",
    response_model=ChartDatasetSchema,
    summary="Chart-ready dataset for the current window.",
)
def get_chart(
    session: TelemetrySession = Depends(get_session),
) -> ChartDatasetSchema:
    return ChartDatasetSchema.from_dataset(session.dataset())


@router.get(
    "/trend",
    response_model=TrendSchema,
    summary="Last value, running average and warming/cooling trend.",
)
def get_trend(
    session: TelemetrySession = Depends(get_session),
) -> TrendSchema:
    reading = session.trend()
    if reading is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No readings accepted yet.",
        )
    return TrendSchema.from_reading(reading)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
