"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .civil_time import CivilDateTime, UtcOffset, from_civil, is_daylight_saving, to_civil
from .day_status import DaySummary, classify_day, summarize_month
from .models import (
    AvailabilitySlot,
    AvailabilityWindow,
    Booking,
    DayStatus,
    LayoutEntry,
    ScheduleBlock,
    WorkingDayWindow,
)
from .timeline import layout_day, timeline_grid
from .windows import detect_overlaps, merge_windows, validate_window, windows_overlap
from .working_days import group_slots_by_day, resolve_working_window, suggest_slots

__all__ = [
    "AvailabilitySlot",
    "AvailabilityWindow",
    "Booking",
    "CivilDateTime",
    "DayStatus",
    "DaySummary",
    "LayoutEntry",
    "ScheduleBlock",
    "UtcOffset",
    "WorkingDayWindow",
    "classify_day",
    "detect_overlaps",
    "from_civil",
    "group_slots_by_day",
    "is_daylight_saving",
    "layout_day",
    "merge_windows",
    "resolve_working_window",
    "suggest_slots",
    "summarize_month",
    "timeline_grid",
    "to_civil",
    "validate_window",
    "windows_overlap",
]
