"""
Calendar arithmetic shared by the reporting engines.

Month math is done on (year, month) pairs so that "previous month" and
"month + N" never depend on the day of month. Every date that is built from
derived components goes through ``build_date`` so that an impossible
boundary surfaces as ``InvalidDateError`` naming the inputs.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timezone
from typing import Any

from costlens.shared.core.exceptions import InvalidDateError


def days_in_month(year: int, month: int) -> int:
    """Gregorian day count, leap years included."""
    return calendar.monthrange(year, month)[1]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move a (year, month) pair by ``delta`` months, crossing year boundaries."""
    total = year * 12 + (month - 1) + delta
    return total // 12, total % 12 + 1


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def months_between(start: tuple[int, int], end: tuple[int, int]) -> int:
    """Number of calendar months from ``start`` to ``end`` (negative if end is earlier)."""
    return (end[0] - start[0]) * 12 + (end[1] - start[1])


def build_date(year: int, month: int, day: int, *, purpose: str) -> date:
    try:
        return date(year, month, day)
    except (ValueError, OverflowError) as exc:
        raise InvalidDateError(
            f"Could not construct {purpose} from year={year}, month={month}, day={day}",
            details={"purpose": purpose, "year": year, "month": month, "day": day},
        ) from exc


def coerce_year_month(year: Any, month: Any) -> tuple[int, int]:
    """Accept ints or numeric strings ("2023", "02") and validate the pair."""
    try:
        y, m = int(year), int(month)
    except (TypeError, ValueError) as exc:
        raise InvalidDateError(
            f"Invalid year/month: year={year!r}, month={month!r}",
            details={"year": str(year), "month": str(month)},
        ) from exc
    if not 1 <= m <= 12:
        raise InvalidDateError(
            f"Month out of range: {m}", details={"year": y, "month": m}
        )
    # Validates the year as well
    build_date(y, m, 1, purpose="month start")
    return y, m


def month_window_utc(year: int, month: int) -> tuple[datetime, datetime]:
    """[00:00:00 UTC of day 1, 23:59:59.999 UTC of the last day]."""
    first = build_date(year, month, 1, purpose="window start")
    last = build_date(year, month, days_in_month(year, month), purpose="window end")
    start = datetime.combine(first, time.min, tzinfo=timezone.utc)
    end = datetime.combine(last, time(23, 59, 59, 999000), tzinfo=timezone.utc)
    return start, end


def utc_day(value: date | datetime) -> date:
    """Calendar day of a record in UTC; naive datetimes are taken as UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def local_day(value: date | datetime | str) -> date:
    """Calendar day of a record in the process's local time zone."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value
