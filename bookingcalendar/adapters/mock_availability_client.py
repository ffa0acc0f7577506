"""
File-backed availability source for demos and offline testing.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pendulum import DateTime

from ..domain.civil_time import CIVIL_TIMEZONE_NAME
from ..domain.exceptions import AvailabilityAPIError
from ..domain.models import (
    AvailabilitySlot,
    AvailabilityWindow,
    Booking,
    ScheduleBlock,
    windows_from_mapping,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_schedule_data.json"


class MockAvailabilityClient:
    """
    Serves schedule data from a JSON file instead of the booking site.

    File layout::

        {
          "availability": {"2025-03-10": [{"start": "09:00", "end": "17:00"}]},
          "bookings": [{"id": "b1", "startsAt": "...", "endsAt": "..."}],
          "scheduleBlocks": [{"starts_at": "...", "ends_at": "..."}],
          "slots": [{"start": "...", "end": "..."}]
        }
    """

    def __init__(self, data_file: Optional[Path] = None):
        self.data_file = Path(data_file) if data_file else DEFAULT_DATA_FILE
        self._data = self._load_data()

    def _load_data(self) -> Dict[str, Any]:
        """Load schedule data from the JSON file."""
        if not self.data_file.exists():
            raise AvailabilityAPIError(f"Schedule data file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise AvailabilityAPIError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise AvailabilityAPIError("Schedule data file must contain a JSON object.")
        return data

    def _entries(self, key: str) -> List[Dict[str, Any]]:
        entries = self._data.get(key) or []
        if not isinstance(entries, list):
            logger.debug("Ignoring %s in %s: not a list", key, self.data_file)
            return []
        return [entry for entry in entries if isinstance(entry, dict)]

    def load_windows(self) -> List[AvailabilityWindow]:
        return windows_from_mapping(self._data.get("availability") or {})

    def load_bookings(self, include_canceled: bool = False) -> List[Booking]:
        """Bookings from the file; canceled ones are left out unless asked for."""
        bookings = [Booking.from_dict(entry) for entry in self._entries("bookings")]
        if include_canceled:
            return bookings
        return [booking for booking in bookings if not booking.is_canceled]

    def load_schedule_blocks(self) -> List[ScheduleBlock]:
        return [ScheduleBlock.from_dict(entry) for entry in self._entries("scheduleBlocks")]

    def get_slots(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str = CIVIL_TIMEZONE_NAME,
        service_slug: Optional[str] = None,
    ) -> List[AvailabilitySlot]:
        """Slots from the file that start within ``[start_time, end_time]``."""
        slots: List[AvailabilitySlot] = []

        for entry in self._entries("slots"):
            slot = AvailabilitySlot.from_dict(entry)
            if slot.start is None:
                logger.debug("Skipping mock slot with unreadable start: %r", entry)
                continue
            if start_time <= slot.start <= end_time:
                slots.append(slot)

        return slots

    def describe(self) -> Dict[str, str]:
        return {"source": "mock", "file": str(self.data_file)}
