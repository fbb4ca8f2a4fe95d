# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities.

This module provides standardized datetime operations to ensure consistency
across the codebase. All datetime operations should use these utilities.

Design Decisions:
-----------------
1. All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ)
2. All Python datetimes are timezone-aware (with timezone.utc)
3. Calendar concepts (week start, active day, hour of day) are evaluated
   in the configured local timezone, then converted back to UTC bounds

Usage:
------
    from src.utils.datetime import utc_now, week_start_for, week_bounds

    week_start = week_start_for(utc_now(), "Europe/Istanbul")
    start, end = week_bounds(week_start, "Europe/Istanbul")
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

DAYS_PER_WEEK = 7


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def get_zone(tz_name: str) -> tzinfo:
    """Resolve an IANA timezone name.

    Args:
        tz_name: Timezone name such as "UTC" or "Europe/Istanbul".

    Returns:
        tzinfo instance.
    """
    if tz_name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz_name)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a datetime into the given local timezone.

    Naive datetimes are treated as UTC.
    """
    return ensure_utc(dt).astimezone(get_zone(tz_name))  # type: ignore[union-attr]


def week_start_for(moment: datetime | date, tz_name: str = "UTC") -> date:
    """Get the Monday of the week containing a moment.

    Args:
        moment: A datetime (converted to local time first) or a date.
        tz_name: Timezone used to decide the calendar day.

    Returns:
        Date of the Monday starting that week.
    """
    if isinstance(moment, datetime):
        day = to_local(moment, tz_name).date()
    else:
        day = moment
    return day - timedelta(days=day.weekday())


def week_end_for(week_start: date) -> date:
    """Get the last calendar day (Sunday) of a week."""
    return week_start + timedelta(days=DAYS_PER_WEEK - 1)


def day_bounds(start_day: date, days: int, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """Build a half-open UTC interval covering whole local days.

    Args:
        start_day: First local calendar day included.
        days: Number of days covered.
        tz_name: Timezone the days are expressed in.

    Returns:
        (start, end) UTC datetimes where end is exclusive.
    """
    zone = get_zone(tz_name)
    start = datetime.combine(start_day, time.min, tzinfo=zone)
    end = datetime.combine(start_day + timedelta(days=days), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def week_bounds(week_start: date, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """Build the half-open UTC interval of a Monday-to-Sunday week."""
    return day_bounds(week_start, DAYS_PER_WEEK, tz_name)
