"""
Classification of a civil day's booking load.

A day is ``closed`` when it has no availability or when bookings cover at
least 90% of its available minutes, ``open`` when nothing is booked, and
``partial`` otherwise. Everything here is a pure function of its inputs;
the current time is always passed in as ``now``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pendulum
from pendulum import Date, DateTime

from .civil_time import civil_date_of, parse_civil_date, parse_instant, start_of_civil_day
from .models import AvailabilityWindow, Booking, DayStatus

CLOSED_THRESHOLD = 0.90


@dataclass(frozen=True)
class DaySummary:
    """Status of one civil day plus the figures it was derived from."""
    date: Date
    status: DayStatus
    bookings: List[Booking] = field(default_factory=list)
    available_minutes: float = 0
    booked_minutes: float = 0
    is_past: bool = False

    @property
    def day_key(self) -> str:
        return self.date.to_date_string()


def windows_for_day(
    windows: Iterable[AvailabilityWindow], day: Date
) -> List[AvailabilityWindow]:
    key = day.to_date_string()
    return [window for window in windows if window.day_key == key]


def bookings_for_day(bookings: Iterable[Booking], day: Date) -> List[Booking]:
    """Bookings whose start falls on civil ``day``; absent instants are skipped."""
    return [
        booking for booking in bookings
        if booking.is_valid and civil_date_of(booking.start) == day
    ]


def _available_minutes(windows: Sequence[AvailabilityWindow]) -> float:
    return sum(window.minutes() for window in windows)


def _booked_minutes(bookings: Sequence[Booking]) -> float:
    return sum(booking.duration_minutes() for booking in bookings)


def _status_from_totals(
    has_windows: bool,
    available_minutes: float,
    has_bookings: bool,
    booked_minutes: float,
) -> DayStatus:
    if not has_windows:
        return DayStatus.CLOSED
    if not has_bookings:
        return DayStatus.OPEN
    if booked_minutes >= CLOSED_THRESHOLD * available_minutes:
        return DayStatus.CLOSED
    return DayStatus.PARTIAL


def classify_day(
    windows: Iterable[AvailabilityWindow],
    bookings: Iterable[Booking],
    day: Any,
) -> DayStatus:
    """
    Classify the booking load of civil ``day``.

    Args:
        windows: Availability windows; only those keyed to ``day`` count
        bookings: Bookings; only those starting on ``day`` count
        day: Civil date, ``YYYY-MM-DD`` string or instant on that day

    Returns:
        DayStatus. An unreadable ``day`` has no availability and is closed.
    """
    civil_day = _coerce_day(day)
    if civil_day is None:
        return DayStatus.CLOSED

    day_windows = windows_for_day(windows, civil_day)
    day_bookings = bookings_for_day(bookings, civil_day)

    return _status_from_totals(
        has_windows=bool(day_windows),
        available_minutes=_available_minutes(day_windows),
        has_bookings=bool(day_bookings),
        booked_minutes=_booked_minutes(day_bookings),
    )


def _coerce_day(day: Any) -> Optional[Date]:
    civil_day = parse_civil_date(day)
    if civil_day is None:
        civil_day = civil_date_of(day)
    return civil_day


def is_past_day(day: Date, now: Any) -> bool:
    """True when ``day`` ends before the civil day containing ``now``."""
    today = civil_date_of(now)
    if today is None:
        return False
    return day < today


def summarize_day(
    windows: Iterable[AvailabilityWindow],
    bookings: Iterable[Booking],
    day: Date,
    now: Any,
) -> DaySummary:
    """Status, figures and past-day flag for one civil day."""
    day_windows = windows_for_day(windows, day)
    day_bookings = sorted(bookings_for_day(bookings, day), key=lambda b: b.start)
    available = _available_minutes(day_windows)
    booked = _booked_minutes(day_bookings)

    return DaySummary(
        date=day,
        status=_status_from_totals(bool(day_windows), available, bool(day_bookings), booked),
        bookings=day_bookings,
        available_minutes=available,
        booked_minutes=booked,
        is_past=is_past_day(day, now),
    )


def summarize_month(
    year: int,
    month: int,
    windows: Iterable[AvailabilityWindow],
    bookings: Iterable[Booking],
    now: Any,
) -> List[DaySummary]:
    """One summary per civil day of the month, in calendar order."""
    window_list = list(windows)
    booking_list = list(bookings)
    days_in_month = calendar.monthrange(year, month)[1]

    return [
        summarize_day(window_list, booking_list, pendulum.date(year, month, day), now)
        for day in range(1, days_in_month + 1)
    ]


def upcoming_bookings(
    bookings: Iterable[Booking],
    windows: Iterable[AvailabilityWindow],
    now: Any,
) -> List[DaySummary]:
    """
    Bookings from the start of today onwards, grouped by civil day.

    Days are returned in key order with their bookings sorted by start.
    """
    now_instant = parse_instant(now)
    today = civil_date_of(now_instant)
    if today is None:
        return []
    cutoff: DateTime = start_of_civil_day(today)

    window_list = list(windows)
    grouped: Dict[str, List[Booking]] = {}
    for booking in bookings:
        if not booking.is_valid or booking.start < cutoff:
            continue
        key = civil_date_of(booking.start).to_date_string()
        grouped.setdefault(key, []).append(booking)

    summaries: List[DaySummary] = []
    for key in sorted(grouped):
        day = parse_civil_date(key)
        summaries.append(summarize_day(window_list, grouped[key], day, now_instant))
    return summaries
