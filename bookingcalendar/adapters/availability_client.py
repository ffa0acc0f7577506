"""
HTTP client for the booking site's availability endpoint.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pendulum import DateTime

from ..domain.civil_time import CIVIL_TIMEZONE_NAME, format_instant
from ..domain.exceptions import AvailabilityAPIError
from ..domain.models import AvailabilitySlot

logger = logging.getLogger(__name__)


class AvailabilityClient:
    """
    Client for ``GET /api/availability``.

    The endpoint proxies the scheduling provider and answers with
    ``{"availability": [{"start": "...", "end": "..."}]}``.
    """

    AVAILABILITY_PATH = "/api/availability"

    def __init__(self, base_url: str, timeout: float = 30, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: Site root, e.g. https://example.com
            timeout: Request timeout in seconds
            session: Optional requests session (reused connections, testing)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_slots(
        self,
        start_time: DateTime,
        end_time: DateTime,
        timezone: str = CIVIL_TIMEZONE_NAME,
        service_slug: Optional[str] = None,
    ) -> List[AvailabilitySlot]:
        """
        Fetch bookable slots between two instants.

        Raises:
            AvailabilityAPIError: If the request fails or the body is not JSON
        """
        params = {
            "from": format_instant(start_time),
            "to": format_instant(end_time),
            "timezone": timezone,
        }
        if service_slug:
            params["slug"] = service_slug

        url = f"{self.base_url}{self.AVAILABILITY_PATH}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise AvailabilityAPIError(f"Failed to fetch availability: {e}") from e
        except ValueError as e:
            raise AvailabilityAPIError(f"Availability response is not valid JSON: {e}") from e

        return self._parse_availability_response(data)

    def _parse_availability_response(self, data: Any) -> List[AvailabilitySlot]:
        """
        Parse the availability response into slots.

        Entries whose start cannot be read are skipped.
        """
        if not isinstance(data, dict):
            raise AvailabilityAPIError("Availability response must be a JSON object")

        slots: List[AvailabilitySlot] = []
        for entry in data.get("availability") or []:
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed availability entry: %r", entry)
                continue
            slot = AvailabilitySlot.from_dict(entry)
            if slot.start is None:
                logger.warning("Skipping availability entry with unreadable start: %r", entry)
                continue
            slots.append(slot)

        return slots

    def describe(self) -> Dict[str, str]:
        return {"source": "http", "url": f"{self.base_url}{self.AVAILABILITY_PATH}"}
