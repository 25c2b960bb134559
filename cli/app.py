from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient, read_events
from cli.config import CLIConfig, load_config
from cli.render import render_chart, render_status, render_trend


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for driving the telemetry window service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show connection state and ingestion counters."""
    state = _get_state(ctx)
    render_status(state.client.status())


@app.command("connect")
def connect_command(
    ctx: typer.Context,
    endpoint: Optional[str] = typer.Option(
        None,
        "--endpoint",
        "-e",
        help="Streaming endpoint to consume events from.",
    ),
) -> None:
    """Reset the window and connect to the streaming endpoint."""
    state = _get_state(ctx)
    payload = state.client.connect(endpoint)
    colour = typer.colors.GREEN if payload.get("state") == "connected" else typer.colors.YELLOW
    typer.secho(f"State: {payload.get('state')}", fg=colour)
    render_status(payload)


@app.command("disconnect")
def disconnect_command(ctx: typer.Context) -> None:
    """Close the streaming connection."""
    state = _get_state(ctx)
    payload = state.client.disconnect()
    typer.echo(f"State: {payload.get('state')}")


@app.command("endpoint")
def endpoint_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Endpoint used by the next connect."),
) -> None:
    """Change the streaming endpoint."""
    state = _get_state(ctx)
    payload = state.client.update_endpoint(url)
    typer.echo(f"Endpoint set to {payload.get('endpoint_url')}")


@app.command("publish")
def publish_command(
    ctx: typer.Context,
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="NDJSON file, one event per line."
    ),
) -> None:
    """Deliver every event in a file to the service."""
    state = _get_state(ctx)
    accepted = 0
    rejected = 0
    for payload in read_events(file):
        outcome = state.client.send_event(payload)
        if outcome.get("accepted"):
            accepted += 1
        else:
            rejected += 1
            typer.secho(f"  - rejected: {outcome.get('reason')}", fg=typer.colors.YELLOW)
    typer.secho(
        f"Published {accepted + rejected} events: {accepted} accepted, {rejected} rejected.",
        fg=typer.colors.GREEN,
    )


@app.command("chart")
def chart_command(ctx: typer.Context) -> None:
    """Summarize the current chart dataset."""
    state = _get_state(ctx)
    render_chart(state.client.chart())


@app.command("trend")
def trend_command(ctx: typer.Context) -> None:
    """Show the running average and warming/cooling trend."""
    state = _get_state(ctx)
    render_trend(state.client.trend())
