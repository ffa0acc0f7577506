"""
Proportional placement of bookings and breaks on a day timeline.

The timeline runs from the earliest window start to the latest window end of
the day. Items are positioned by their civil start/end hour as a percentage of
that span. Overlapping items are allowed to overlap visually.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from pendulum import Date

from .civil_time import to_civil
from .models import AvailabilityWindow, LayoutEntry, ScheduledItem

logger = logging.getLogger(__name__)

PIXELS_PER_HOUR = 60
MIN_TIMELINE_HEIGHT_PX = 400


@dataclass(frozen=True)
class HourMarker:
    hour: int
    position_percent: float

    @property
    def label(self) -> str:
        suffix = "AM" if self.hour % 24 < 12 else "PM"
        display = self.hour % 12 or 12
        return f"{display}:00 {suffix}"


@dataclass(frozen=True)
class TimelineGrid:
    """Bounds of a day timeline with its hour gridlines."""
    earliest_start: float
    latest_end: float
    markers: List[HourMarker]
    height_px: float

    @property
    def span_hours(self) -> float:
        return self.latest_end - self.earliest_start


def _day_windows(
    windows: Iterable[AvailabilityWindow], day: Optional[Date]
) -> List[AvailabilityWindow]:
    if day is None:
        return list(windows)
    key = day.to_date_string()
    return [window for window in windows if window.day_key == key]


def timeline_bounds(windows: Sequence[AvailabilityWindow]) -> Tuple[float, float]:
    """Earliest start and latest end across ``windows``, as fractional hours."""
    earliest_start = 24.0
    latest_end = 0.0

    for window in windows:
        earliest_start = min(earliest_start, window.start.fractional_hour)
        latest_end = max(latest_end, window.end.fractional_hour)

    return earliest_start, latest_end


def _containing_window(
    item: ScheduledItem, windows: Sequence[AvailabilityWindow]
) -> Optional[AvailabilityWindow]:
    """
    First window fully containing the item, else the first one containing its start.
    """
    bounds = [(window, window.start_instant(), window.end_instant()) for window in windows]
    bounds = [(w, s, e) for w, s, e in bounds if s is not None and e is not None]

    for window, start, end in bounds:
        if item.start >= start and item.end <= end:
            return window

    for window, start, end in bounds:
        if start <= item.start < end:
            return window

    return None


def layout_day(
    windows: Iterable[AvailabilityWindow],
    items: Iterable[ScheduledItem],
    day: Optional[Date] = None,
) -> List[LayoutEntry]:
    """
    Position bookings and breaks on the day timeline.

    Args:
        windows: Availability windows of the day (filtered to ``day`` if given)
        items: Bookings and schedule blocks
        day: Optional civil day to restrict the windows to

    Returns:
        One LayoutEntry per item that lies in an open window, in input order.
        A day without a positive span yields no entries.
    """
    day_windows = _day_windows(windows, day)
    earliest_start, latest_end = timeline_bounds(day_windows)
    total_span = latest_end - earliest_start

    if total_span <= 0:
        return []

    entries: List[LayoutEntry] = []
    for item in items:
        if not item.is_valid:
            continue

        if _containing_window(item, day_windows) is None:
            logger.debug("%s %s lies outside every open window", item.kind, item.id)
            continue

        # Measured from the start so items running past midnight keep their length
        start_hour = to_civil(item.start).fractional_hour
        end_hour = start_hour + item.duration_minutes() / 60

        entries.append(
            LayoutEntry(
                item=item,
                top_percent=(start_hour - earliest_start) / total_span * 100,
                height_percent=(end_hour - start_hour) / total_span * 100,
            )
        )

    return entries


def timeline_grid(
    windows: Iterable[AvailabilityWindow],
    day: Optional[Date] = None,
) -> Optional[TimelineGrid]:
    """Hour gridlines for the day timeline, ``None`` for a degenerate day."""
    earliest_start, latest_end = timeline_bounds(_day_windows(windows, day))
    span = latest_end - earliest_start
    if span <= 0:
        return None

    first_hour = math.floor(earliest_start)
    last_hour = math.ceil(latest_end)
    markers = [
        HourMarker(hour=hour, position_percent=(hour - earliest_start) / span * 100)
        for hour in range(first_hour, last_hour + 1)
    ]

    return TimelineGrid(
        earliest_start=earliest_start,
        latest_end=latest_end,
        markers=markers,
        height_px=max(MIN_TIMELINE_HEIGHT_PX, span * PIXELS_PER_HOUR),
    )
