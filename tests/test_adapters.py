"""
Tests for the availability adapters.
"""

import json

import pendulum
import pytest
import requests

from bookingcalendar.adapters.availability_client import AvailabilityClient
from bookingcalendar.adapters.mock_availability_client import MockAvailabilityClient
from bookingcalendar.domain.exceptions import AvailabilityAPIError


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    """Records requests and returns a canned response or raises."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


START = pendulum.datetime(2025, 3, 10, 4, tz="UTC")
END = pendulum.datetime(2025, 3, 15, 3, 59, 59, tz="UTC")


class TestAvailabilityClient:
    """Tests for the HTTP client."""

    def test_query_and_parsing(self):
        """The window is sent as UTC bounds with slug and timezone."""
        session = FakeSession(FakeResponse({
            "availability": [
                {"start": "2025-03-10T13:00:00Z", "end": "2025-03-10T14:00:00Z"},
                {"start": "not a time", "end": "2025-03-10T15:00:00Z"},
                "garbage",
            ]
        }))
        client = AvailabilityClient("https://salon.example.com/", timeout=5, session=session)

        slots = client.get_slots(START, END, "America/New_York", "signature-facial")

        assert session.requests == [{
            "url": "https://salon.example.com/api/availability",
            "params": {
                "from": "2025-03-10T04:00:00Z",
                "to": "2025-03-15T03:59:59Z",
                "timezone": "America/New_York",
                "slug": "signature-facial",
            },
            "timeout": 5,
        }]
        assert len(slots) == 1
        assert slots[0].start == pendulum.datetime(2025, 3, 10, 13, tz="UTC")

    def test_slug_is_optional(self):
        session = FakeSession(FakeResponse({"availability": []}))
        client = AvailabilityClient("https://salon.example.com", session=session)

        assert client.get_slots(START, END) == []
        assert "slug" not in session.requests[0]["params"]

    def test_connection_error_is_wrapped(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("refused"))
        client = AvailabilityClient("https://salon.example.com", session=session)

        with pytest.raises(AvailabilityAPIError, match="refused"):
            client.get_slots(START, END)

    def test_http_error_is_wrapped(self):
        session = FakeSession(FakeResponse(status_code=502))
        client = AvailabilityClient("https://salon.example.com", session=session)

        with pytest.raises(AvailabilityAPIError):
            client.get_slots(START, END)

    def test_invalid_json(self):
        session = FakeSession(FakeResponse(invalid_json=True))
        client = AvailabilityClient("https://salon.example.com", session=session)

        with pytest.raises(AvailabilityAPIError, match="JSON"):
            client.get_slots(START, END)

    def test_non_object_body(self):
        session = FakeSession(FakeResponse(["2025-03-10T13:00:00Z"]))
        client = AvailabilityClient("https://salon.example.com", session=session)

        with pytest.raises(AvailabilityAPIError):
            client.get_slots(START, END)

    def test_describe(self):
        client = AvailabilityClient("https://salon.example.com", session=FakeSession())

        assert client.describe() == {
            "source": "http",
            "url": "https://salon.example.com/api/availability",
        }


class TestMockAvailabilityClient:
    """Tests for the file-backed client."""

    def test_bundled_data(self):
        """The bundled file has windows, bookings, breaks and slots."""
        client = MockAvailabilityClient()

        assert len(client.load_windows()) == 10
        assert [b.id for b in client.load_bookings()][:2] == ["bk-1001", "bk-1002"]
        assert all(block.kind == "break" for block in client.load_schedule_blocks())
        assert len(client.get_slots(START, END)) == 12
        assert client.describe()["source"] == "mock"

    def test_slot_range_is_inclusive(self, tmp_path):
        data_file = tmp_path / "schedule.json"
        data_file.write_text(json.dumps({
            "slots": [
                {"start": "2025-03-10T04:00:00Z", "end": "2025-03-10T05:00:00Z"},
                {"start": "2025-03-15T04:00:00Z", "end": "2025-03-15T05:00:00Z"},
                {"start": None, "end": None},
            ]
        }), encoding="utf-8")

        client = MockAvailabilityClient(data_file)

        assert [s.start for s in client.get_slots(START, END)] == [START]
        assert client.load_windows() == []
        assert client.load_bookings() == []

    def test_canceled_bookings_are_left_out(self, tmp_path):
        data_file = tmp_path / "schedule.json"
        data_file.write_text(json.dumps({
            "bookings": [
                {"id": "kept", "startsAt": "2025-03-10T13:00:00Z", "endsAt": "2025-03-10T14:00:00Z"},
                {"id": "gone", "startsAt": "2025-03-10T15:00:00Z", "endsAt": "2025-03-10T16:00:00Z", "isCanceled": True},
                {"id": "also-gone", "startsAt": "2025-03-10T17:00:00Z", "endsAt": "2025-03-10T18:00:00Z", "is_canceled": True},
            ]
        }), encoding="utf-8")

        client = MockAvailabilityClient(data_file)

        assert [b.id for b in client.load_bookings()] == ["kept"]
        assert len(client.load_bookings(include_canceled=True)) == 3

    def test_sections_of_the_wrong_shape_are_empty(self, tmp_path):
        """A list of availability or a non-list section loads as nothing."""
        data_file = tmp_path / "schedule.json"
        data_file.write_text(json.dumps({
            "availability": [{"start": "09:00", "end": "17:00"}],
            "bookings": 3,
            "scheduleBlocks": {"start": "2025-03-10T16:00:00Z"},
            "slots": "none",
        }), encoding="utf-8")

        client = MockAvailabilityClient(data_file)

        assert client.load_windows() == []
        assert client.load_bookings() == []
        assert client.load_schedule_blocks() == []
        assert client.get_slots(START, END) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(AvailabilityAPIError, match="not found"):
            MockAvailabilityClient(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        data_file = tmp_path / "schedule.json"
        data_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(AvailabilityAPIError, match="Invalid JSON"):
            MockAvailabilityClient(data_file)
