from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry window service."""

    def __init__(
        self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def status(self) -> Dict[str, Any]:
        return self._request("GET", "/session")

    def connect(self, endpoint_url: Optional[str] = None) -> Dict[str, Any]:
        body = {"endpoint_url": endpoint_url} if endpoint_url else None
        return self._request("POST", "/session/connect", json=body)

    def disconnect(self) -> Dict[str, Any]:
        return self._request("POST", "/session/disconnect")

    def update_endpoint(self, endpoint_url: str) -> Dict[str, Any]:
        return self._request("PUT", "/session/endpoint", json={"endpoint_url": endpoint_url})

    def send_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/events", json=payload)

    def chart(self) -> Dict[str, Any]:
        return self._request("GET", "/chart")

    def trend(self) -> Optional[Dict[str, Any]]:
        response = self._send("GET", "/trend")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return response.json()

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._send(method, url, **kwargs)
        self._raise_for_status(response)
        return response.json()

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)

    def _raise_for_status(self, response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def read_events(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield one payload per non-blank line of an NDJSON file."""
    with path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            candidate = line.strip()
            if not candidate:
                continue
            try:
                payload = json.loads(candidate)
            except json.JSONDecodeError as exc:
                raise typer.BadParameter(
                    f"Line {line_number} of {path} is not valid JSON: {exc.msg}"
                ) from exc
            if not isinstance(payload, dict):
                raise typer.BadParameter(f"Line {line_number} of {path} is not a JSON object.")
            yield payload
