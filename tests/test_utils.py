"""Tests for GKE Cleaner time helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gke_cleaner.utils import (
    format_duration,
    format_timestamp,
    parse_datetime,
    parse_duration,
    parse_timestamp,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10m", timedelta(minutes=10)),
        ("24h", timedelta(hours=24)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("45s", timedelta(seconds=45)),
        ("1.5h", timedelta(minutes=90)),
        ("250ms", timedelta(milliseconds=250)),
        ("0", timedelta(0)),
    ],
)
def test_parse_duration(text: str, expected: timedelta) -> None:
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "10", "m", "10x", "1h junk", "h10"])
def test_parse_duration_rejects_garbage(text: str) -> None:
    with pytest.raises(ValueError):
        parse_duration(text)


def test_format_duration() -> None:
    assert format_duration(timedelta(hours=24)) == "24h"
    assert format_duration(timedelta(minutes=90, seconds=5)) == "1h30m5s"
    assert format_duration(timedelta(0)) == "0s"


def test_parse_datetime_normalizes_to_utc() -> None:
    expected = datetime(2019, 8, 12, 20, 53, 13, tzinfo=timezone.utc)

    assert parse_datetime("2019-08-12T20:53:13+00:00") == expected
    assert parse_datetime("2019-08-12T20:53:13Z") == expected
    assert parse_datetime("2019-08-12T22:53:13+02:00") == expected


def test_stored_timestamps_sort_like_times() -> None:
    early = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
    late = early + timedelta(microseconds=1)

    assert format_timestamp(early) < format_timestamp(late)
    assert len(format_timestamp(early)) == len(format_timestamp(late))
    assert parse_timestamp(format_timestamp(late)) == late
