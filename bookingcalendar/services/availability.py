"""
Application service for checking reschedule availability.

The service resolves the working-day window around a requested day, issues
one fetch to the availability source per resolved window and groups the
returned slots by civil day. Results are tagged with the selection they were
requested for; when the selection changes while a fetch is in flight, the late
result is marked stale and dropped instead of cancelling the request.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pendulum import DateTime, WeekDay

from ..domain.civil_time import CIVIL_TIMEZONE_NAME, format_instant
from ..domain.models import AvailabilitySlot, WorkingDayWindow
from ..domain.working_days import (
    SUGGESTIONS_LIMIT,
    SUGGESTIONS_PER_DAY,
    ExcludedWeekdays,
    group_slots_by_day,
    resolve_working_window,
    suggest_slots,
)

logger = logging.getLogger(__name__)

# Resolved windows kept in the fetch memo
CACHE_SIZE = 16


class AvailabilitySourceProtocol(Protocol):
    """Protocol describing the availability source used by the service."""

    def get_slots(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str,
        service_slug: Optional[str] = None,
    ) -> List[AvailabilitySlot]:
        """Return bookable slots between two instants."""


def build_selection_key(parts: Mapping[str, Any]) -> str:
    """Canonical key: sorted ``name=value`` pairs joined with ``&``."""
    return "&".join(
        sorted(f"{name}={'' if value is None else value}" for name, value in parts.items())
    )


@dataclass
class AvailabilityResult:
    """Slots for one selection, grouped by civil day."""
    selection_key: str
    window: WorkingDayWindow
    slots_by_day: Dict[str, List[AvailabilitySlot]] = field(default_factory=dict)
    suggestions: List[AvailabilitySlot] = field(default_factory=list)
    stale: bool = False

    @property
    def slot_count(self) -> int:
        return sum(len(slots) for slots in self.slots_by_day.values())


class RescheduleAvailabilityService:
    """
    Orchestrates window resolution, slot retrieval and grouping.

    The source is a plain synchronous client; fetches run in a worker thread so
    that several selections can be in flight on one event loop.
    """

    def __init__(
        self,
        source: AvailabilitySourceProtocol,
        *,
        excluded_weekdays: Optional[ExcludedWeekdays] = WeekDay.SATURDAY,
        timezone: str = CIVIL_TIMEZONE_NAME,
        service_slug: Optional[str] = None,
        suggestions_per_day: int = SUGGESTIONS_PER_DAY,
        suggestions_limit: int = SUGGESTIONS_LIMIT,
        cache_size: int = CACHE_SIZE,
    ) -> None:
        self._source = source
        self._excluded_weekdays = excluded_weekdays
        self._timezone = timezone
        self._service_slug = service_slug
        self._suggestions_per_day = suggestions_per_day
        self._suggestions_limit = suggestions_limit
        self._cache_size = cache_size
        self._current_selection: Optional[str] = None
        self._cache: OrderedDict[str, List[AvailabilitySlot]] = OrderedDict()

    @property
    def current_selection(self) -> Optional[str]:
        return self._current_selection

    def selection_key(self, requested_date: Any, requested_time: Any = None) -> str:
        return build_selection_key(
            {
                "date": requested_date,
                "time": requested_time,
                "slug": self._service_slug,
                "timezone": self._timezone,
            }
        )

    def select(self, requested_date: Any, requested_time: Any = None) -> str:
        """Make the given date/time the current selection and return its key."""
        self._current_selection = self.selection_key(requested_date, requested_time)
        return self._current_selection

    def resolve_window(self, requested_date: Any) -> Optional[WorkingDayWindow]:
        return resolve_working_window(requested_date, self._excluded_weekdays)

    async def check_availability(
        self,
        requested_date: Any,
        requested_time: Any = None,
    ) -> Optional[AvailabilityResult]:
        """
        Fetch and group availability around ``requested_date``.

        Returns:
            AvailabilityResult, flagged ``stale`` with no slots when the
            selection changed before the fetch completed; ``None`` when the
            requested date cannot be read.
        """
        window = self.resolve_window(requested_date)
        if window is None:
            return None

        key = self.select(requested_date, requested_time)
        slots = await self.fetch_slots(window, issued_for=key)

        if key != self._current_selection:
            logger.info("Discarding stale availability for %s", key)
            return AvailabilityResult(selection_key=key, window=window, stale=True)

        suggestions: List[AvailabilitySlot] = []
        if requested_time is not None:
            suggestions = suggest_slots(
                slots,
                requested_date,
                requested_time,
                self._excluded_weekdays,
                per_day=self._suggestions_per_day,
                limit=self._suggestions_limit,
            )

        return AvailabilityResult(
            selection_key=key,
            window=window,
            slots_by_day=group_slots_by_day(slots),
            suggestions=suggestions,
        )

    async def fetch_slots(
        self,
        window: WorkingDayWindow,
        issued_for: Optional[str] = None,
    ) -> List[AvailabilitySlot]:
        """
        Fetch slots for a resolved window, memoised by the window's query.

        A fetch whose selection is no longer current when it completes is
        returned to the caller but not memoised.
        """
        fetch_key = build_selection_key(
            {
                "from": format_instant(window.range_start),
                "to": format_instant(window.range_end),
                "timezone": self._timezone,
                "slug": self._service_slug,
            }
        )
        if fetch_key in self._cache:
            logger.debug("Availability cache hit for %s", fetch_key)
            self._cache.move_to_end(fetch_key)
            return list(self._cache[fetch_key])

        slots = await asyncio.to_thread(
            self._source.get_slots,
            window.range_start,
            window.range_end,
            self._timezone,
            self._service_slug,
        )

        if issued_for is None or issued_for == self._current_selection:
            self._cache[fetch_key] = list(slots)
            # Least recently used windows go first
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return list(slots)

    @property
    def cached_windows(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()
