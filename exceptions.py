"""Exception hierarchy for the telemetry window service."""

from __future__ import annotations

from enum import Enum


class RejectReason(str, Enum):
    """Why a single inbound record was dropped."""

    malformed_payload = "malformed_payload"
    schema_mismatch = "schema_mismatch"
    missing_field = "missing_field"
    timestamp_parse_error = "timestamp_parse_error"
    value_type_error = "value_type_error"
    non_finite_value = "non_finite_value"


class TelemetryError(Exception):
    """Base exception for all telemetry window errors."""


class RecordRejected(TelemetryError):
    """An inbound record failed validation and must be dropped.

    Rejections are never fatal: the caller drops the record and leaves all
    buffered state untouched.
    """

    reason: RejectReason = RejectReason.malformed_payload

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail or self.reason.value)


class MalformedPayload(RecordRejected):
    """Payload is not a decodable JSON object."""

    reason = RejectReason.malformed_payload


class SchemaMismatch(RecordRejected):
    """Payload carries a ``dataschema`` other than the accepted one."""

    reason = RejectReason.schema_mismatch


class MissingField(RecordRejected):
    """A required field is absent."""

    reason = RejectReason.missing_field

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"missing field {field!r}")


class TimestampParseError(RecordRejected):
    """The ``time`` field is not a valid RFC3339 timestamp."""

    reason = RejectReason.timestamp_parse_error


class ValueTypeError(RecordRejected):
    """The reading is neither a number nor a numeric string."""

    reason = RejectReason.value_type_error


class NonFiniteValue(RecordRejected):
    """The reading decoded to NaN or infinity."""

    reason = RejectReason.non_finite_value


class TransportError(TelemetryError):
    """The streaming connection failed to open or broke mid-stream."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class NotConnectedError(TelemetryError):
    """Data was delivered while the session is not connected."""
