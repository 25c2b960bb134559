from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_clock(value: Optional[str]) -> str:
    """Render an ISO timestamp as HH:MM:SS, the chart's axis label format."""
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%H:%M:%S")
    except ValueError:
        return value


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Session")
    echo_key_values(
        [
            ("state", payload.get("state")),
            ("endpoint_url", payload.get("endpoint_url")),
            ("events_received", payload.get("events_received")),
            ("series_count", payload.get("series_count")),
            ("point_count", payload.get("point_count")),
        ]
    )
    if payload.get("last_error"):
        typer.secho(f"last_error: {payload['last_error']}", fg=typer.colors.RED)
    rejected = payload.get("rejected") or {}
    if rejected:
        typer.echo("rejected:")
        for reason, count in rejected.items():
            typer.echo(f"  - {reason}: {count}")


def render_chart(payload: Dict[str, Any]) -> None:
    echo_heading("Chart")
    extent = payload.get("time_extent")
    series = payload.get("series") or []
    if not extent or not series:
        typer.echo("No events. The chart will only draw when messages are received.")
        return

    low, high = payload.get("value_range") or (None, None)
    echo_key_values(
        [
            ("time_extent", f"{format_clock(extent[0])} .. {format_clock(extent[1])}"),
            ("value_range", f"{low} .. {high}"),
        ]
    )
    typer.echo()
    echo_heading("Series")
    for entry in series:
        points = entry.get("points") or []
        latest = points[-1] if points else {}
        typer.echo(
            f"  - {entry.get('label')} [{entry.get('color_name')} {entry.get('color')}] "
            f"points={len(points)} last={latest.get('value')} @ {format_clock(latest.get('timestamp'))}"
        )


def render_trend(payload: Optional[Dict[str, Any]]) -> None:
    echo_heading("Trend")
    if not payload:
        typer.echo("No readings accepted yet.")
        return
    echo_key_values(
        [
            ("last_value", payload.get("last_value")),
            ("running_average", payload.get("running_average")),
            ("trend", payload.get("trend")),
        ]
    )
