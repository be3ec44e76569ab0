from datetime import datetime

import pytest

from usertasks.services.date_time import format_date_time, parse_date_time
from usertasks.services.errors import TaskValidationError


def test_parse_accepts_exact_format():
    assert parse_date_time("2026-10-18 09:05:00") == datetime(2026, 10, 18, 9, 5, 0)


def test_format_preserves_submitted_string():
    raw = "2025-01-02 03:04:05"
    assert format_date_time(parse_date_time(raw)) == raw


@pytest.mark.parametrize(
    "raw",
    [
        "2026-10-18T09:05:00",
        "2026-10-18 09:05",
        "2026-1-8 09:05:00",
        "2026-10-18 9:05:00",
        "2026-10-18 09:05:00.123",
        " 2026-10-18 09:05:00",
        "2026-13-01 00:00:00",
        "2026-02-30 00:00:00",
        "2026-10-18 24:00:00",
        "",
        "tomorrow",
    ],
)
def test_parse_rejects_anything_else(raw):
    with pytest.raises(TaskValidationError):
        parse_date_time(raw)


def test_parse_rejects_non_strings():
    with pytest.raises(TaskValidationError):
        parse_date_time(None)
    with pytest.raises(TaskValidationError):
        parse_date_time(20261018)
