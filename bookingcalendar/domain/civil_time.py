"""
Conversion between absolute instants and the business's civil (wall-clock) time.

The business runs on US Eastern time. The daylight-saving boundaries are
computed here from the fixed rule rather than from a timezone database:

* daylight time starts at 07:00 UTC on the second Sunday of March
  (02:00 local standard time)
* daylight time ends at 06:00 UTC on the first Sunday of November
  (02:00 local daylight time)

Every helper in this module is total: malformed input yields ``None`` instead
of raising, and callers treat ``None`` as absent data.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime
from typing import Any, Optional

import pendulum
from pendulum import Date, DateTime
from pendulum.parsing.exceptions import ParserError

logger = logging.getLogger(__name__)

CIVIL_TIMEZONE_NAME = "America/New_York"

# Boundary hours in UTC on the transition Sundays
DST_START_UTC_HOUR = 7
DST_END_UTC_HOUR = 6

_CIVIL_PATTERN = re.compile(
    r"^\s*(\d{4})-(\d{2})-(\d{2})[T ](\d{1,2}):(\d{2})(?::(\d{2}))?\s*$"
)


@dataclass(frozen=True)
class UtcOffset:
    """Signed difference between civil time and UTC, in minutes."""
    minutes: int

    @property
    def is_daylight(self) -> bool:
        return self.minutes == DAYLIGHT_OFFSET.minutes

    def __str__(self) -> str:
        sign = "+" if self.minutes >= 0 else "-"
        hours, minutes = divmod(abs(self.minutes), 60)
        return f"{sign}{hours:02d}:{minutes:02d}"


STANDARD_OFFSET = UtcOffset(-5 * 60)
DAYLIGHT_OFFSET = UtcOffset(-4 * 60)


@dataclass(frozen=True)
class CivilDateTime:
    """
    Wall-clock fields in the civil timezone.

    ``month`` is 1-based. ``utc_offset`` is the offset in effect for these
    fields; it is ``None`` for bare wall-clock input that has not been
    resolved against an instant yet.
    """
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    utc_offset: Optional[UtcOffset] = None

    def date(self) -> Date:
        return pendulum.date(self.year, self.month, self.day)

    @property
    def day_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    @property
    def fractional_hour(self) -> float:
        return self.hour + self.minute / 60

    @property
    def minutes_of_day(self) -> int:
        return self.hour * 60 + self.minute

    def isoformat(self) -> str:
        text = (
            f"{self.day_key}T{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        )
        if self.utc_offset is not None:
            text += str(self.utc_offset)
        return text

    def __str__(self) -> str:
        return self.isoformat()


def _sunday_based_weekday(year: int, month: int, day: int) -> int:
    """Weekday with Sunday = 0 and Saturday = 6."""
    return (pendulum.date(year, month, day).day_of_week + 1) % 7


def _first_sunday(year: int, month: int) -> int:
    weekday = _sunday_based_weekday(year, month, 1)
    return 1 if weekday == 0 else 8 - weekday


def second_sunday_of_march(year: int) -> int:
    """Day of month of the second Sunday in March."""
    return _first_sunday(year, 3) + 7


def first_sunday_of_november(year: int) -> int:
    """Day of month of the first Sunday in November."""
    return _first_sunday(year, 11)


def is_daylight_saving(year: int, month_index: int, day: int, hour: int) -> bool:
    """
    Tell whether a moment falls inside the daylight-saving period.

    Args:
        year: Calendar year
        month_index: Month, 0-based (0 = January, 2 = March, 10 = November)
        day: Day of month
        hour: Hour of day

    The fields are the UTC calendar fields of the moment, so the transition
    instants can be compared directly against 07:00 / 06:00 UTC.
    """
    if 3 <= month_index <= 9:
        return True
    if month_index == 2:
        start_day = second_sunday_of_march(year)
        if day != start_day:
            return day > start_day
        return hour >= DST_START_UTC_HOUR
    if month_index == 10:
        end_day = first_sunday_of_november(year)
        if day != end_day:
            return day < end_day
        return hour < DST_END_UTC_HOUR
    return False


def _as_utc(instant: DateTime) -> DateTime:
    return instant.in_timezone("UTC")


def offset_at(instant: DateTime) -> UtcOffset:
    """Offset in effect at ``instant``."""
    utc = _as_utc(instant)
    if is_daylight_saving(utc.year, utc.month - 1, utc.day, utc.hour):
        return DAYLIGHT_OFFSET
    return STANDARD_OFFSET


def to_civil(instant: Any) -> Optional[CivilDateTime]:
    """
    Project an instant into civil wall-clock fields.

    Accepts anything :func:`parse_instant` understands. Returns ``None`` when
    the input cannot be read as an instant.
    """
    parsed = parse_instant(instant)
    if parsed is None:
        return None

    offset = offset_at(parsed)
    wall = _as_utc(parsed).add(minutes=offset.minutes)
    return CivilDateTime(
        year=wall.year,
        month=wall.month,
        day=wall.day,
        hour=wall.hour,
        minute=wall.minute,
        second=wall.second,
        utc_offset=offset,
    )


def _wall_as_utc(civil: CivilDateTime) -> Optional[DateTime]:
    try:
        return pendulum.datetime(
            civil.year,
            civil.month,
            civil.day,
            civil.hour,
            civil.minute,
            civil.second,
            tz="UTC",
        )
    except (TypeError, ValueError, OverflowError):
        return None


def from_civil(civil: Optional[CivilDateTime]) -> Optional[DateTime]:
    """
    Resolve civil wall-clock fields to the instant they denote.

    The offset is derived from the rule for the date being converted. A
    wall clock inside the repeated fall-back hour maps to two instants: the
    carried ``utc_offset`` picks one when it is consistent, otherwise the
    daylight (earlier) reading is used. A wall clock inside the
    spring-forward gap does not exist and gives ``None``.
    """
    if civil is None:
        return None

    wall = _wall_as_utc(civil)
    if wall is None:
        logger.debug("Invalid civil fields: %r", civil)
        return None

    candidates = [DAYLIGHT_OFFSET, STANDARD_OFFSET]
    if civil.utc_offset in candidates:
        candidates.remove(civil.utc_offset)
        candidates.insert(0, civil.utc_offset)

    for offset in candidates:
        instant = wall.subtract(minutes=offset.minutes)
        if offset_at(instant) == offset:
            return instant

    logger.debug("Wall clock %s falls in the spring-forward gap", civil)
    return None


def parse_instant(value: Any) -> Optional[DateTime]:
    """
    Read ``value`` as an absolute instant in UTC.

    Supports pendulum/stdlib datetimes (naive ones are taken as UTC), ISO-8601
    strings and epoch seconds. Returns ``None`` for anything else.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _as_utc(pendulum.instance(value))

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return pendulum.from_timestamp(value, tz="UTC")
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = pendulum.parse(text)
        except (ParserError, ValueError, OverflowError):
            logger.debug("Unparseable instant: %r", value)
            return None
        if isinstance(parsed, DateTime):
            return _as_utc(parsed)
        return None

    return None


def parse_civil(value: Any) -> Optional[CivilDateTime]:
    """
    Read ``YYYY-MM-DD HH:MM[:SS]`` (or ``T`` separated) wall-clock text.

    The returned value has no offset attached; use :func:`from_civil` to
    resolve it. Returns ``None`` for malformed or out-of-range input.
    """
    if isinstance(value, CivilDateTime):
        return value
    if not isinstance(value, str):
        return None

    match = _CIVIL_PATTERN.match(value)
    if not match:
        return None

    year, month, day, hour, minute, second = (
        int(group) if group is not None else 0 for group in match.groups()
    )
    civil = CivilDateTime(year, month, day, hour, minute, second)
    if _wall_as_utc(civil) is None:
        return None
    return civil


def parse_civil_date(value: Any) -> Optional[Date]:
    """Read a civil calendar date from a date, a ``YYYY-MM-DD`` string or civil fields."""
    if isinstance(value, CivilDateTime):
        return _safe_date(value.year, value.month, value.day)
    if isinstance(value, datetime):
        return None
    if isinstance(value, date_type):
        return pendulum.date(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            year, month, day = (int(part) for part in value.strip().split("-"))
        except ValueError:
            return None
        return _safe_date(year, month, day)
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[Date]:
    try:
        return pendulum.date(year, month, day)
    except (TypeError, ValueError, OverflowError):
        return None


def civil_date_of(instant: Any) -> Optional[Date]:
    """Civil calendar date on which ``instant`` falls."""
    civil = to_civil(instant)
    if civil is None:
        return None
    return civil.date()


def day_key(value: Any) -> Optional[str]:
    """
    ``YYYY-MM-DD`` key of the civil day of ``value``.

    Dates and date strings are used as they are; anything else is read as an
    instant and projected into civil time first.
    """
    as_date = parse_civil_date(value)
    if as_date is None:
        as_date = civil_date_of(value)
    if as_date is None:
        return None
    return as_date.to_date_string()


def at_civil_time(
    day: Date, hour: int = 0, minute: int = 0, second: int = 0
) -> Optional[DateTime]:
    """Instant of the given wall-clock time on civil ``day``."""
    return from_civil(
        CivilDateTime(day.year, day.month, day.day, hour, minute, second)
    )


def start_of_civil_day(day: Date) -> Optional[DateTime]:
    return at_civil_time(day, 0, 0, 0)


def end_of_civil_day(day: Date) -> Optional[DateTime]:
    return at_civil_time(day, 23, 59, 59)


def format_instant(instant: Optional[DateTime]) -> Optional[str]:
    """ISO-8601 UTC string for an instant, ``None`` passes through."""
    if instant is None:
        return None
    return _as_utc(instant).to_iso8601_string()
