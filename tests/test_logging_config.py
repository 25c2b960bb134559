from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("services.session", logging.WARNING, __file__, 1, "Dropped record", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_known_extra_keys_are_appended() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    message = formatter.format(_record(reason="missing_field", device="sensor-a", ignored="x"))

    assert message == "Dropped record | device=sensor-a reason=missing_field"


def test_none_values_are_skipped() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    assert formatter.format(_record(device=None)) == "Dropped record"
