"""Decoding and validation of inbound telemetry messages."""

from __future__ import annotations

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Union

from exceptions import (
    MalformedPayload,
    MissingField,
    SchemaMismatch,
    TimestampParseError,
    ValueTypeError,
)
from models.records import TelemetryRecord
from settings import DEFAULT_SCHEMA

RawPayload = Union[str, bytes, bytearray, Mapping[str, Any]]

_RFC3339 = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"[Tt ]"
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)
_DECIMAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp, keeping its UTC offset.

    Unlike ``datetime.fromisoformat`` this refuses naive timestamps and
    date-only strings.
    """
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"not an RFC3339 timestamp: {value!r}")

    offset = match.group("offset")
    if offset in ("Z", "z"):
        tzinfo = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError(f"invalid UTC offset: {offset!r}")
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))

    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    return datetime(
        int(match.group("year")),
        int(match.group("month")),
        int(match.group("day")),
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second")),
        int(fraction),
        tzinfo=tzinfo,
    )


def parse_value(raw: Any) -> float:
    """Accept a JSON number or a string holding a decimal number."""
    if isinstance(raw, bool):
        raise ValueTypeError(f"unsupported value type {type(raw).__name__}")
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        if not _DECIMAL.match(raw):
            raise ValueTypeError(f"value {raw!r} is not a decimal number")
        return float(raw)
    raise ValueTypeError(f"unsupported value type {type(raw).__name__}")


class RecordExtractor:
    """Turns one raw message into a validated :class:`TelemetryRecord`."""

    def __init__(self, schema: str = DEFAULT_SCHEMA) -> None:
        self.schema = schema

    def extract(self, raw: RawPayload) -> TelemetryRecord:
        document = self._decode(raw)

        schema = document.get("dataschema")
        if schema != self.schema:
            raise SchemaMismatch(f"unexpected dataschema {schema!r}")

        time_raw = document.get("time")
        if not isinstance(time_raw, str):
            raise MissingField("time")
        try:
            timestamp = parse_rfc3339(time_raw)
        except ValueError as exc:
            raise TimestampParseError(str(exc)) from exc

        device = document.get("device")
        if not isinstance(device, str):
            raise MissingField("device")

        data = document.get("data")
        if not isinstance(data, Mapping) or "temp" not in data or data["temp"] is None:
            raise MissingField("data.temp")
        value = parse_value(data["temp"])

        return TelemetryRecord(schema=schema, device=device, timestamp=timestamp, value=value)

    @staticmethod
    def _decode(raw: RawPayload) -> Mapping[str, Any]:
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedPayload("payload is not valid UTF-8") from exc
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise MalformedPayload(f"payload is not valid JSON: {exc.msg}") from exc
        if not isinstance(raw, Mapping):
            raise MalformedPayload("payload is not a JSON object")
        return raw
