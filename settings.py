from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_SCHEMA_ENV = "TELEMETRY_SCHEMA"
_ENDPOINT_ENV = "TELEMETRY_ENDPOINT_URL"
_CAPACITY_ENV = "TELEMETRY_SERIES_CAPACITY"
_AVERAGE_WINDOW_ENV = "TELEMETRY_AVERAGE_WINDOW"
_COLOR_STRATEGY_ENV = "TELEMETRY_COLOR_STRATEGY"
_TRANSPORT_ENV = "TELEMETRY_TRANSPORT"
_AUTO_RECONNECT_ENV = "TELEMETRY_AUTO_RECONNECT"
_VALUE_MIN_ENV = "TELEMETRY_VALUE_MIN"
_VALUE_MAX_ENV = "TELEMETRY_VALUE_MAX"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_SCHEMA = "urn:drogue:iot:temperature"
DEFAULT_ENDPOINT_URL = "wss://ws-integration.sandbox.drogue.cloud/drogue-public-temperature"

COLOR_STRATEGIES = ("deterministic", "random")
TRANSPORTS = ("push", "http-stream")


@dataclass(frozen=True)
class Settings:
    schema: str
    endpoint_url: str
    series_capacity: int
    average_window: int
    color_strategy: str
    transport: str
    auto_reconnect: bool
    value_min: float
    value_max: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return float(candidate)
    except ValueError:
        return default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _read_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    candidate = _read_str_env(name, default).lower()
    return candidate if candidate in choices else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    value_min = _read_float(_VALUE_MIN_ENV, -10.0)
    value_max = _read_float(_VALUE_MAX_ENV, 40.0)
    if value_min >= value_max:
        value_min, value_max = -10.0, 40.0
    return Settings(
        schema=_read_str_env(_SCHEMA_ENV, DEFAULT_SCHEMA),
        endpoint_url=_read_str_env(_ENDPOINT_ENV, DEFAULT_ENDPOINT_URL),
        series_capacity=_read_positive_int(_CAPACITY_ENV, 100),
        average_window=_read_positive_int(_AVERAGE_WINDOW_ENV, 5),
        color_strategy=_read_choice(_COLOR_STRATEGY_ENV, COLOR_STRATEGIES, "deterministic"),
        transport=_read_choice(_TRANSPORT_ENV, TRANSPORTS, "push"),
        auto_reconnect=_read_bool(_AUTO_RECONNECT_ENV, True),
        value_min=value_min,
        value_max=value_max,
        log_level=_read_log_level("INFO"),
    )
