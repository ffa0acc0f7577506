"""
Tests for day status classification.
"""

import pendulum
import pytest

from bookingcalendar.domain.day_status import (
    CLOSED_THRESHOLD,
    classify_day,
    is_past_day,
    summarize_day,
    summarize_month,
    upcoming_bookings,
)
from bookingcalendar.domain.models import AvailabilityWindow, Booking, DayStatus, WallClock


def window(day: str, start: str, end: str) -> AvailabilityWindow:
    return AvailabilityWindow(day_key=day, start=WallClock.parse(start), end=WallClock.parse(end))


def booking(booking_id: str, start: str, end: str) -> Booking:
    return Booking(
        id=booking_id,
        start=pendulum.parse(start),
        end=pendulum.parse(end),
    )


@pytest.fixture
def eight_hour_day():
    return [window("2025-03-12", "09:00", "17:00")]


class TestClassifyDay:
    """Tests for classify_day."""

    def test_threshold_is_ninety_percent(self):
        """The closed threshold is 90%."""
        assert CLOSED_THRESHOLD == 0.90

    def test_exactly_ninety_percent_is_closed(self, eight_hour_day):
        """432 of 480 minutes booked closes the day."""
        bookings = [booking("b1", "2025-03-12T09:00:00-04:00", "2025-03-12T16:12:00-04:00")]

        assert classify_day(eight_hour_day, bookings, "2025-03-12") == DayStatus.CLOSED

    def test_just_below_ninety_percent_is_partial(self, eight_hour_day):
        """431 of 480 minutes booked leaves the day partially open."""
        bookings = [booking("b1", "2025-03-12T09:00:00-04:00", "2025-03-12T16:11:00-04:00")]

        assert classify_day(eight_hour_day, bookings, "2025-03-12") == DayStatus.PARTIAL

    def test_no_bookings_is_open(self, eight_hour_day):
        """A day with availability and no bookings is open."""
        assert classify_day(eight_hour_day, [], "2025-03-12") == DayStatus.OPEN

    def test_no_windows_is_closed_regardless_of_bookings(self):
        """Without availability the day is closed."""
        bookings = [booking("b1", "2025-03-12T09:00:00-04:00", "2025-03-12T09:30:00-04:00")]

        assert classify_day([], bookings, "2025-03-12") == DayStatus.CLOSED
        assert classify_day([], [], "2025-03-12") == DayStatus.CLOSED

    def test_windows_and_bookings_of_other_days_are_ignored(self, eight_hour_day):
        """Only the requested day's windows and bookings count."""
        other = [booking("b1", "2025-03-13T09:00:00-04:00", "2025-03-13T17:00:00-04:00")]

        assert classify_day(eight_hour_day, other, "2025-03-12") == DayStatus.OPEN
        assert classify_day(eight_hour_day, other, "2025-03-13") == DayStatus.CLOSED

    def test_split_shift_minutes_are_summed(self):
        """Both windows of a split shift count towards the available minutes."""
        windows = [
            window("2025-03-13", "09:00", "12:00"),
            window("2025-03-13", "13:00", "17:00"),
        ]
        # 420 available, 378 = 90%
        closing = [booking("b1", "2025-03-13T09:00:00-04:00", "2025-03-13T15:18:00-04:00")]
        partial = [booking("b1", "2025-03-13T09:00:00-04:00", "2025-03-13T15:17:00-04:00")]

        assert classify_day(windows, closing, "2025-03-13") == DayStatus.CLOSED
        assert classify_day(windows, partial, "2025-03-13") == DayStatus.PARTIAL

    def test_booking_day_is_civil_day_of_start(self, eight_hour_day):
        """A booking at 02:00 UTC belongs to the previous civil evening."""
        late = [booking("b1", "2025-03-13T02:00:00Z", "2025-03-13T03:00:00Z")]

        assert classify_day(eight_hour_day, late, "2025-03-12") == DayStatus.PARTIAL
        assert classify_day(eight_hour_day + [window("2025-03-13", "09:00", "17:00")], late, "2025-03-13") == DayStatus.OPEN

    def test_order_independent(self, eight_hour_day):
        """Classification does not depend on input order."""
        bookings = [
            booking("b1", "2025-03-12T09:00:00-04:00", "2025-03-12T12:00:00-04:00"),
            booking("b2", "2025-03-12T12:00:00-04:00", "2025-03-12T16:12:00-04:00"),
        ]

        assert classify_day(eight_hour_day, bookings, "2025-03-12") == DayStatus.CLOSED
        assert classify_day(eight_hour_day, list(reversed(bookings)), "2025-03-12") == DayStatus.CLOSED

    def test_invalid_bookings_are_absent(self, eight_hour_day):
        """Bookings with unreadable instants do not count."""
        broken = [Booking.from_dict({"id": "b1", "startsAt": "soon", "endsAt": "later"})]

        assert classify_day(eight_hour_day, broken, "2025-03-12") == DayStatus.OPEN

    def test_zero_span_window_with_bookings_is_closed(self):
        """A degenerate window still runs on minute sums and closes the day."""
        windows = [window("2025-03-12", "10:00", "10:00")]
        bookings = [booking("b1", "2025-03-12T10:00:00-04:00", "2025-03-12T10:30:00-04:00")]

        assert classify_day(windows, bookings, "2025-03-12") == DayStatus.CLOSED

    def test_unreadable_day_is_closed(self, eight_hour_day):
        """A day that cannot be read has no availability."""
        assert classify_day(eight_hour_day, [], "not-a-day") == DayStatus.CLOSED


class TestSummaries:
    """Tests for day and month summaries."""

    def test_summarize_day_figures(self, eight_hour_day):
        """Summary carries minutes, sorted bookings and the past flag."""
        bookings = [
            booking("b2", "2025-03-12T13:00:00-04:00", "2025-03-12T14:00:00-04:00"),
            booking("b1", "2025-03-12T09:00:00-04:00", "2025-03-12T10:00:00-04:00"),
        ]
        now = pendulum.parse("2025-03-13T12:00:00Z")

        summary = summarize_day(eight_hour_day, bookings, pendulum.date(2025, 3, 12), now)

        assert summary.status == DayStatus.PARTIAL
        assert summary.available_minutes == 480
        assert summary.booked_minutes == 120
        assert [b.id for b in summary.bookings] == ["b1", "b2"]
        assert summary.is_past
        assert summary.day_key == "2025-03-12"

    def test_summarize_month(self, eight_hour_day):
        """One summary per day of the month."""
        now = pendulum.parse("2025-03-11T12:00:00Z")

        summaries = summarize_month(2025, 3, eight_hour_day, [], now)

        assert len(summaries) == 31
        assert summaries[0].date == pendulum.date(2025, 3, 1)
        assert summaries[11].status == DayStatus.OPEN
        assert summaries[10].status == DayStatus.CLOSED
        assert summaries[9].is_past
        assert not summaries[10].is_past

    def test_is_past_day_uses_civil_today(self):
        """At 02:00 UTC the civil day is still the previous one."""
        now = pendulum.parse("2025-03-12T02:00:00Z")

        assert not is_past_day(pendulum.date(2025, 3, 11), now)
        assert is_past_day(pendulum.date(2025, 3, 10), now)


class TestUpcomingBookings:
    """Tests for upcoming_bookings."""

    def test_groups_from_start_of_today(self, eight_hour_day):
        """Earlier days are dropped; today's earlier bookings are kept."""
        bookings = [
            booking("past", "2025-03-10T09:00:00-04:00", "2025-03-10T10:00:00-04:00"),
            booking("this-morning", "2025-03-11T09:00:00-04:00", "2025-03-11T10:00:00-04:00"),
            booking("late", "2025-03-12T15:00:00-04:00", "2025-03-12T16:00:00-04:00"),
            booking("early", "2025-03-12T09:00:00-04:00", "2025-03-12T10:00:00-04:00"),
        ]
        now = pendulum.parse("2025-03-11T18:00:00Z")

        groups = upcoming_bookings(bookings, eight_hour_day, now)

        assert [group.day_key for group in groups] == ["2025-03-11", "2025-03-12"]
        assert [b.id for b in groups[0].bookings] == ["this-morning"]
        assert [b.id for b in groups[1].bookings] == ["early", "late"]
        assert groups[0].status == DayStatus.CLOSED
        assert groups[1].status == DayStatus.PARTIAL

    def test_invalid_now_gives_nothing(self, eight_hour_day):
        """An unreadable reference time yields no groups."""
        assert upcoming_bookings([], eight_hour_day, "whenever") == []
