from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import Iterator, Tuple

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime(str(value or "").strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError("Format tanggal tidak valid (YYYY-MM-DD)")


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime(str(value or "").strip(), "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError("Format jam tidak valid (HH:MM)")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def inclusive_days(start: date, end: date) -> int:
    return (end - start).days + 1


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def count_weekdays(start: date, end: date) -> int:
    """Number of Monday-Friday dates in [start, end]."""
    return sum(1 for d in iter_dates(start, end) if d.weekday() < 5)


def month_bounds(day: date) -> Tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def minutes_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() // 60))
