# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from datetime import datetime, timedelta
import os

from pytest import raises

from gradeflow.misc_utils import (
    calendar_period_starts,
    datetime_to_json,
    seconds_between,
    to_naive_utc,
    utc_now,
    validate_timezone,
    working_directory,
)


def test_utc_now_is_naive() -> None:
    assert utc_now().tzinfo is None


def test_datetime_to_json() -> None:
    assert datetime_to_json(None) is None
    s = datetime_to_json(datetime(2024, 3, 1, 12, 30))
    assert s.startswith("2024-03-01T12:30:00")
    assert s.endswith("+00:00")


def test_to_naive_utc() -> None:
    assert to_naive_utc("2024-03-01T12:00:00-08:00") == datetime(2024, 3, 1, 20, 0)
    assert to_naive_utc(datetime(2024, 3, 1, 20, 0)) == datetime(2024, 3, 1, 20, 0)


def test_validate_timezone() -> None:
    assert validate_timezone("UTC") == "UTC"
    assert validate_timezone("America/Vancouver") == "America/Vancouver"
    for tz in (None, "", "Not/AZone"):
        with raises(ValueError):
            validate_timezone(tz)


def test_calendar_periods_utc() -> None:
    # a Wednesday
    now = datetime(2024, 5, 15, 10, 30)
    p = calendar_period_starts(now, "UTC")
    assert p["day"] == datetime(2024, 5, 15)
    assert p["week"] == datetime(2024, 5, 13)
    assert p["month"] == datetime(2024, 5, 1)


def test_calendar_periods_depend_on_timezone() -> None:
    # 03:00 UTC on the 1st is still the 31st in Vancouver (UTC-7 in summer)
    now = datetime(2024, 6, 1, 3, 0)
    p = calendar_period_starts(now, "UTC")
    assert p["day"] == datetime(2024, 6, 1)
    assert p["month"] == datetime(2024, 6, 1)
    p = calendar_period_starts(now, "America/Vancouver")
    assert p["day"] == datetime(2024, 5, 31, 7, 0)
    assert p["month"] == datetime(2024, 5, 1, 7, 0)


def test_seconds_between() -> None:
    t = datetime(2024, 1, 1)
    assert seconds_between(t, t + timedelta(minutes=2)) == 120


def test_working_directory(tmpdir) -> None:
    before = os.getcwd()
    with working_directory(tmpdir):
        assert os.path.samefile(os.getcwd(), tmpdir)
    assert os.getcwd() == before
