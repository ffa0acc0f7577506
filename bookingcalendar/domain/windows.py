"""
Overlap detection, validation and merging for availability windows.
"""

from typing import Iterable, List, Optional, Tuple

from .models import AvailabilityWindow

MINUTES_PER_DAY = 24 * 60


def _span(window: AvailabilityWindow) -> Tuple[int, int]:
    """Start and end minutes, with an end before the start running past midnight."""
    start = window.start.minutes
    end = window.end.minutes
    if end < start:
        end += MINUTES_PER_DAY
    return start, end


def windows_overlap(first: AvailabilityWindow, second: AvailabilityWindow) -> bool:
    """Check if two windows overlap, ignoring their day keys."""
    start1, end1 = _span(first)
    start2, end2 = _span(second)

    # Shift the other window into the next day when one crosses midnight
    if first.end.minutes < first.start.minutes and start2 < first.end.minutes:
        start2 += MINUTES_PER_DAY
    if second.end.minutes < second.start.minutes and start1 < second.end.minutes:
        start1 += MINUTES_PER_DAY

    return (start1 < end2 and start2 < end1) or (start1 == start2 and end1 == end2)


def detect_overlaps(
    candidate: AvailabilityWindow,
    existing: Iterable[AvailabilityWindow],
) -> List[AvailabilityWindow]:
    """Existing windows on the candidate's day that overlap it."""
    return [
        window for window in existing
        if window.day_key == candidate.day_key and windows_overlap(window, candidate)
    ]


def validate_window(window: AvailabilityWindow) -> Tuple[bool, Optional[str]]:
    """
    Validate a window before it is saved.

    Returns ``(valid, error message)``.
    """
    if window.date is None:
        return False, f"Invalid day: {window.day_key}"

    start = window.start.minutes
    end = window.end.minutes
    if end <= start:
        end += MINUTES_PER_DAY

    if end - start > MINUTES_PER_DAY:
        return False, "Schedule duration cannot exceed 24 hours"

    return True, None


def merge_windows(windows: Iterable[AvailabilityWindow]) -> List[AvailabilityWindow]:
    """
    Merge overlapping or adjacent windows of one day.

    Example: [09:00-12:00, 11:00-13:00, 13:00-14:00, 15:00-17:00]
    -> [09:00-14:00, 15:00-17:00]
    """
    ordered = sorted(windows, key=lambda w: (w.start.minutes, w.end.minutes))
    if not ordered:
        return []

    merged: List[AvailabilityWindow] = []
    current = ordered[0]

    for window in ordered[1:]:
        if windows_overlap(current, window) or current.end == window.start:
            if window.end.minutes > current.end.minutes:
                current = AvailabilityWindow(
                    day_key=current.day_key,
                    start=current.start,
                    end=window.end,
                )
        else:
            merged.append(current)
            current = window

    merged.append(current)
    return merged
