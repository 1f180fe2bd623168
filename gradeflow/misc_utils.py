# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 The Gradeflow Developers

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
import os

import arrow


# ------------------------------------------------
# some time conversion tools put here nice and central
#
# The database stores naive datetimes which are always UTC.


def utc_now() -> datetime:
    """The time now in UTC, as a naive datetime suitable for the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def datetime_to_json(timestamp):
    """Format a database timestamp for JSON, or None if there is no timestamp."""
    if timestamp is None:
        return None
    return arrow.get(timestamp).isoformat()


def json_to_arrow(timestring):
    return arrow.get(timestring)


def to_naive_utc(when) -> datetime:
    """Convert a datetime, Arrow or ISO string to a naive UTC datetime.

    Naive inputs are taken to be UTC already.
    """
    return arrow.get(when).to("utc").naive


def utc_now_to_string():
    """Format the time now in UTC to a string with no spaces."""
    return arrow.utcnow().format("YYYY-MM-DD_HH-mm-ss_ZZZ")


def validate_timezone(tz: str) -> str:
    """Check a time zone name can be used for calendar arithmetic.

    Raises:
        ValueError: unknown or malformed time zone.
    """
    if not tz or not isinstance(tz, str):
        raise ValueError("A time zone must be configured explicitly")
    try:
        arrow.utcnow().to(tz)
    except ValueError as e:
        raise ValueError(f'Unknown time zone "{tz}": {e}') from None
    return tz


def calendar_period_starts(now: datetime, tz: str) -> dict[str, datetime]:
    """Start of the current day, week and month in a given time zone.

    Args:
        now: a naive UTC datetime.
        tz: the time zone whose calendar defines "today".  Weeks start
            on Monday.

    Returns:
        Keys ``"day"``, ``"week"`` and ``"month"``, each a naive UTC
        datetime of the start of that period.
    """
    local = arrow.get(now).to(tz)
    return {
        period: local.floor(period).to("utc").naive
        for period in ("day", "week", "month")
    }


def seconds_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(seconds=1)


@contextmanager
def working_directory(path):
    """Temporarily change the current working directory.

    Usage:
    ```
    with working_directory(path):
        do_things()   # working in the given path
    do_other_things() # back to original path
    ```
    """
    current_directory = os.getcwd()
    os.chdir(path)
    try:
        yield
    finally:
        os.chdir(current_directory)
