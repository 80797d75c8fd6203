"""
Overlap detection for time-of-day intervals.

Times are fixed-width ``HH:MM`` strings in the coach's wall-clock time, so
plain string comparison orders them correctly. No timezone normalization
is performed.
"""

from datetime import date, datetime, time
from typing import Iterable, List

from django.utils import timezone


def times_overlap(start1: str, end1: str, start2: str, end2: str) -> bool:
    """
    Check whether half-open intervals [start1, end1) and [start2, end2) overlap.

    Adjacent intervals (end1 == start2) do not overlap.
    """
    return start1 < end2 and start2 < end1


def find_conflicts(start_time: str, end_time: str, slots: Iterable) -> List:
    """Return the slots whose [start_time, end_time) overlaps the candidate."""
    return [
        slot for slot in slots
        if times_overlap(start_time, end_time, slot.start_time, slot.end_time)
    ]


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a time object."""
    hours, minutes = value.split(':')
    return time(int(hours), int(minutes))


def combine(day: date, hhmm: str, tz=None) -> datetime:
    """
    Reconstruct the aware start instant of ``hhmm`` on ``day``.

    Args:
        day: calendar date
        hhmm: wall-clock time as ``HH:MM``
        tz: timezone to interpret the wall-clock time in (default: current)
    """
    naive = datetime.combine(day, parse_hhmm(hhmm))
    return timezone.make_aware(naive, tz or timezone.get_current_timezone())


def day_of_week(day: date) -> int:
    """Day-of-week number with 0 = Sunday, 1 = Monday ... 6 = Saturday."""
    return day.isoweekday() % 7
