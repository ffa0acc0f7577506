"""
Exception hierarchy for the booking calendar application.

The domain layer degrades to absent values instead of raising; these are used
at the adapter, configuration and CLI seams.
"""


class BookingCalendarError(Exception):
    """Base class for all application-level errors."""


class AvailabilityAPIError(BookingCalendarError):
    """Raised when availability data cannot be fetched or parsed."""


class ConfigurationError(BookingCalendarError):
    """Raised when the configuration cannot be used for the requested action."""
