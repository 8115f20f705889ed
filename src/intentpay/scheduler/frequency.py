"""Due-time arithmetic for recurring payments."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from intentpay.core.types import Frequency

_FIXED_INTERVALS: dict[Frequency, timedelta] = {
    Frequency.EVERY_FIVE_MINUTES: timedelta(minutes=5),
    Frequency.WEEKLY: timedelta(days=7),
}


def interval_for(frequency: Frequency) -> timedelta | None:
    """Fixed interval of ``frequency``, or None for calendar-based MONTHLY."""
    return _FIXED_INTERVALS.get(frequency)


def add_months(value: datetime, months: int = 1, anchor_day: int | None = None) -> datetime:
    """
    Advance ``value`` by whole calendar months.

    The day of month is ``anchor_day`` (defaulting to ``value.day``), clamped
    to the last day of the target month: Jan 31 + 1 month is Feb 28/29, and
    with ``anchor_day=31`` the following month returns to the 31st.
    """
    day = anchor_day or value.day
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(day, last_day))


def next_due(
    frequency: Frequency,
    from_time: datetime,
    anchor_day: int | None = None,
) -> datetime:
    """
    Next due time measured from ``from_time``.

    The scheduler passes the time the run started, so a late run shifts
    the schedule rather than triggering catch-up executions.
    """
    interval = interval_for(frequency)
    if interval is not None:
        return from_time + interval
    return add_months(from_time, 1, anchor_day)
