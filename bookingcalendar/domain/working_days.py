"""
Working-day windows around a target day, and grouping of availability slots.

The resolver collects up to two working days on each side of the target day,
skipping the excluded weekday(s). Each direction scans at most ten calendar
days so that a configuration excluding every weekday still terminates.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, TypeVar, Union

from pendulum import Date, WeekDay

from .civil_time import (
    CivilDateTime,
    civil_date_of,
    end_of_civil_day,
    parse_civil,
    parse_civil_date,
    start_of_civil_day,
    to_civil,
)
from .models import WallClock, WorkingDayWindow

logger = logging.getLogger(__name__)

DAYS_EACH_SIDE = 2
MAX_SCAN_DAYS = 10
SUGGESTIONS_PER_DAY = 7
SUGGESTIONS_LIMIT = 35

ExcludedWeekdays = Union[WeekDay, int, str, Iterable[Union[WeekDay, int, str]]]

SlotT = TypeVar("SlotT")


WEEKDAY_NAMES = {
    "monday": WeekDay.MONDAY,
    "tuesday": WeekDay.TUESDAY,
    "wednesday": WeekDay.WEDNESDAY,
    "thursday": WeekDay.THURSDAY,
    "friday": WeekDay.FRIDAY,
    "saturday": WeekDay.SATURDAY,
    "sunday": WeekDay.SUNDAY,
}


def weekday_from_value(value: Any) -> int:
    """
    Convert a weekday name ("saturday", "Sat") or number (0=Monday) to 0-6.

    Raises:
        ValueError: If the value is not a weekday
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a weekday: {value!r}")
    if isinstance(value, int):
        if value not in range(7):
            raise ValueError(f"Weekday must be between 0 and 6, got {value}")
        return int(value)
    if isinstance(value, str):
        name = value.strip().lower()
        for full_name, weekday in WEEKDAY_NAMES.items():
            if name == full_name or (len(name) >= 3 and full_name.startswith(name)):
                return int(weekday)
    raise ValueError(f"Unknown weekday: {value!r}")


def normalize_weekdays(excluded: Optional[ExcludedWeekdays]) -> FrozenSet[int]:
    """
    Monday-based weekday numbers (0 = Monday) from one weekday or several.

    Names are accepted as well as numbers. Values that are not weekdays are
    logged and ignored.
    """
    if excluded is None:
        return frozenset()
    if isinstance(excluded, (int, str)):
        values = [excluded]
    else:
        try:
            values = list(excluded)
        except TypeError:
            values = [excluded]

    days = set()
    for value in values:
        try:
            days.add(weekday_from_value(value))
        except ValueError:
            logger.warning("Ignoring unknown excluded weekday %r", value)
    return frozenset(days)


def target_date(target: Any) -> Optional[Date]:
    """
    Civil day of ``target``.

    Accepts civil fields, dates, instants and strings: ``YYYY-MM-DD``,
    ``YYYY-MM-DD HH:MM`` wall-clock text or an ISO-8601 instant.
    """
    if isinstance(target, CivilDateTime):
        return parse_civil_date(target)
    if isinstance(target, str):
        civil = parse_civil(target)
        if civil is not None:
            return civil.date()
    as_date = parse_civil_date(target)
    if as_date is not None:
        return as_date
    return civil_date_of(target)


def _walk(origin: Date, step: int, excluded: FrozenSet[int]) -> List[Date]:
    found: List[Date] = []
    cursor = origin
    for _ in range(MAX_SCAN_DAYS):
        if len(found) >= DAYS_EACH_SIDE:
            break
        cursor = cursor.add(days=step)
        if int(cursor.day_of_week) not in excluded:
            found.append(cursor)
    return found


def resolve_working_window(
    target: Any,
    excluded_weekdays: Optional[ExcludedWeekdays] = WeekDay.SATURDAY,
) -> Optional[WorkingDayWindow]:
    """
    Build the window of working days around ``target``.

    The result holds up to two working days before the target day, the target
    day itself (even when it is an excluded weekday) and up to two working days
    after it. When either side comes up short the window carries a warning;
    it never raises for configuration problems.

    Returns:
        WorkingDayWindow, or ``None`` if ``target`` cannot be read.
    """
    day = target_date(target)
    if day is None:
        logger.debug("Cannot resolve a working-day window for %r", target)
        return None

    excluded = normalize_weekdays(excluded_weekdays)
    backward = _walk(day, -1, excluded)
    forward = _walk(day, 1, excluded)

    warning = None
    if len(backward) < DAYS_EACH_SIDE or len(forward) < DAYS_EACH_SIDE:
        warning = (
            f"Found {len(backward)} working day(s) before and {len(forward)} after "
            f"{day.to_date_string()} within {MAX_SCAN_DAYS} days; "
            f"check the excluded weekdays {sorted(excluded)}"
        )
        logger.warning(warning)

    days = tuple(reversed(backward)) + (day,) + tuple(forward)

    return WorkingDayWindow(
        days=days,
        range_start=start_of_civil_day(days[0]),
        range_end=end_of_civil_day(days[-1]),
        warning=warning,
    )


def group_slots_by_day(slots: Iterable[SlotT]) -> Dict[str, List[SlotT]]:
    """
    Group slots by the civil day of their start.

    Keys are ``YYYY-MM-DD`` in ascending order and every day's slots are sorted
    by start. Slots without a readable start are dropped.
    """
    grouped: Dict[str, List[SlotT]] = {}

    for slot in slots:
        start = getattr(slot, "start", None)
        civil = to_civil(start)
        if civil is None:
            logger.debug("Dropping slot without a usable start: %r", slot)
            continue
        grouped.setdefault(civil.day_key, []).append(slot)

    return {
        key: sorted(grouped[key], key=lambda s: s.start)
        for key in sorted(grouped)
    }


def suggest_slots(
    slots: Sequence[SlotT],
    requested_date: Any,
    requested_time: Any,
    excluded_weekdays: Optional[ExcludedWeekdays] = WeekDay.SATURDAY,
    per_day: int = SUGGESTIONS_PER_DAY,
    limit: int = SUGGESTIONS_LIMIT,
) -> List[SlotT]:
    """
    Pick the slots closest to a requested time across the working-day window.

    Slots of each day are ranked by how far their civil start time is from
    ``requested_time`` and the best ``per_day`` are kept. The requested day
    comes first, then the earlier working days, then the later ones.
    """
    wall_clock = WallClock.parse(requested_time)
    window = resolve_working_window(requested_date, excluded_weekdays)
    if not slots or wall_clock is None or window is None:
        return []

    target_minutes = wall_clock.minutes
    by_day = group_slots_by_day(slots)

    def score(slot) -> int:
        return abs(to_civil(slot.start).minutes_of_day - target_minutes)

    keys = window.day_keys
    chosen_key = target_date(requested_date).to_date_string()
    ordered_keys = [chosen_key] + [key for key in keys if key != chosen_key]

    result: List[SlotT] = []
    for key in ordered_keys:
        if key in by_day:
            result.extend(sorted(by_day[key], key=score)[:per_day])

    return result[:limit]
