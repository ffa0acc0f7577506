"""
Domain models for availability windows, bookings and computed schedule views.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pendulum import Date, DateTime

from .civil_time import (
    CIVIL_TIMEZONE_NAME,
    at_civil_time,
    format_instant,
    parse_civil_date,
    parse_instant,
)

logger = logging.getLogger(__name__)

_WALL_CLOCK_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")


@dataclass(frozen=True, order=True)
class WallClock:
    """A time of day in civil time, minute precision."""
    hour: int
    minute: int = 0

    @classmethod
    def parse(cls, value: Any) -> Optional["WallClock"]:
        """Parse ``HH:MM`` or ``HH:MM:SS``; returns ``None`` when malformed."""
        if isinstance(value, WallClock):
            return value
        if not isinstance(value, str):
            return None
        match = _WALL_CLOCK_PATTERN.match(value)
        if not match:
            return None
        hour, minute = int(match.group(1)), int(match.group(2))
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return None
        return cls(hour=hour, minute=minute)

    @property
    def minutes(self) -> int:
        return self.hour * 60 + self.minute

    @property
    def fractional_hour(self) -> float:
        return self.hour + self.minute / 60

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class AvailabilityWindow:
    """
    One open interval within a single civil day.

    Several windows may exist for the same day (split shifts).
    """
    day_key: str
    start: WallClock
    end: WallClock

    @classmethod
    def from_dict(cls, day_key: str, data: Mapping[str, Any]) -> Optional["AvailabilityWindow"]:
        """Build a window from ``{"start": "HH:MM", "end": "HH:MM"}``."""
        if parse_civil_date(day_key) is None:
            return None
        start = WallClock.parse(data.get("start"))
        end = WallClock.parse(data.get("end"))
        if start is None or end is None:
            return None
        return cls(day_key=day_key, start=start, end=end)

    @property
    def date(self) -> Optional[Date]:
        return parse_civil_date(self.day_key)

    def minutes(self) -> int:
        """Length of the window in minutes."""
        return self.end.minutes - self.start.minutes

    def start_instant(self) -> Optional[DateTime]:
        day = self.date
        if day is None:
            return None
        return at_civil_time(day, self.start.hour, self.start.minute)

    def end_instant(self) -> Optional[DateTime]:
        day = self.date
        if day is None:
            return None
        return at_civil_time(day, self.end.hour, self.end.minute)

    def to_dict(self) -> Dict[str, str]:
        return {"start": str(self.start), "end": str(self.end)}

    def __str__(self) -> str:
        return f"{self.day_key} {self.start} - {self.end}"


def windows_from_mapping(
    availability: Mapping[str, Any],
) -> List[AvailabilityWindow]:
    """
    Build windows from the day-keyed availability stream.

    Expected shape: ``{"2025-03-10": [{"start": "09:00", "end": "17:00"}]}``.
    Malformed days or entries are dropped.
    """
    windows: List[AvailabilityWindow] = []

    if not isinstance(availability, Mapping):
        logger.debug("Ignoring availability of type %s: not a day-keyed mapping", type(availability).__name__)
        return windows

    for key, entries in availability.items():
        if not isinstance(entries, list):
            logger.debug("Skipping availability for %s: not a list", key)
            continue
        for entry in entries:
            window = None
            if isinstance(entry, Mapping):
                window = AvailabilityWindow.from_dict(key, entry)
            if window is None:
                logger.debug("Skipping malformed availability window %r on %s", entry, key)
                continue
            windows.append(window)

    return windows


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class ScheduledItem:
    """
    Something occupying an interval on the timeline.

    ``start`` and ``end`` are ``None`` when the source data could not be
    parsed; such items are treated as absent by classification and layout.
    """
    id: str
    start: Optional[DateTime]
    end: Optional[DateTime]
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    kind = "item"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        raw_start = _first_present(data, "startsAt", "starts_at", "start")
        raw_end = _first_present(data, "endsAt", "ends_at", "end")
        item_id = data.get("id") or f"{cls.kind}-{raw_start}"
        metadata = {
            key: value
            for key, value in data.items()
            if key not in {"id", "startsAt", "starts_at", "start", "endsAt", "ends_at", "end"}
        }
        return cls(
            id=str(item_id),
            start=parse_instant(raw_start),
            end=parse_instant(raw_end),
            metadata=metadata,
        )

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.end is not None

    def duration_minutes(self) -> Optional[float]:
        """Length in minutes, ``None`` when either bound is absent."""
        if not self.is_valid:
            return None
        return (self.end - self.start).total_seconds() / 60


@dataclass(frozen=True)
class Booking(ScheduledItem):
    """A customer appointment as fetched from the booking backend."""
    kind = "booking"

    @property
    def is_canceled(self) -> bool:
        return bool(self.metadata.get("isCanceled") or self.metadata.get("is_canceled"))


@dataclass(frozen=True)
class ScheduleBlock(ScheduledItem):
    """A blocked, non-bookable interval such as a lunch break."""
    kind = "break"


@dataclass(frozen=True)
class AvailabilitySlot:
    """A bookable slot supplied by the external availability source."""
    start: Optional[DateTime]
    end: Optional[DateTime]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AvailabilitySlot":
        return cls(
            start=parse_instant(data.get("start")),
            end=parse_instant(data.get("end")),
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"start": format_instant(self.start), "end": format_instant(self.end)}


class DayStatus(str, Enum):
    """Booking load of a civil day."""
    OPEN = "open"
    PARTIAL = "partial"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WorkingDayWindow:
    """
    A bounded run of civil days around a target day.

    ``range_start`` is 00:00:00 civil time on the first day and ``range_end``
    23:59:59 on the last. ``warning`` is set when the working-day search came
    up short.
    """
    days: Tuple[Date, ...]
    range_start: DateTime
    range_end: DateTime
    warning: Optional[str] = None

    @property
    def day_keys(self) -> List[str]:
        return [day.to_date_string() for day in self.days]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "days": self.day_keys,
            "rangeStart": format_instant(self.range_start),
            "rangeEnd": format_instant(self.range_end),
        }
        if self.warning:
            data["warning"] = self.warning
        return data

    def query_params(
        self,
        service_slug: Optional[str] = None,
        timezone: str = CIVIL_TIMEZONE_NAME,
    ) -> Dict[str, str]:
        """Query parameters for the availability endpoint."""
        params = {
            "from": format_instant(self.range_start),
            "to": format_instant(self.range_end),
            "timezone": timezone,
        }
        if service_slug:
            params["slug"] = service_slug
        return params


@dataclass(frozen=True)
class LayoutEntry:
    """Vertical placement of a booking or break on a day timeline, in percent."""
    item: ScheduledItem
    top_percent: float
    height_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "itemId": self.item.id,
            "kind": self.item.kind,
            "topPercent": self.top_percent,
            "heightPercent": self.height_percent,
        }
