"""
Data types and constants for the coach scheduling engine.

This module contains:
- Status, medium and actor constants shared by models and services
- DTOs (Data Transfer Objects) for service layer operations
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


# Session statuses
SCHEDULED = 'scheduled'
CONFIRMED = 'confirmed'
IN_PROGRESS = 'in-progress'
COMPLETED = 'completed'
CANCELED = 'canceled'
NO_SHOW = 'no-show'

ACTIVE_STATUSES = (SCHEDULED, CONFIRMED, IN_PROGRESS)
TERMINAL_STATUSES = (COMPLETED, CANCELED, NO_SHOW)
CANCELABLE_STATUSES = (SCHEDULED, CONFIRMED)
UPCOMING_STATUSES = (SCHEDULED, CONFIRMED)

# Session media
ONLINE = 'online'
IN_PERSON = 'in-person'
BOTH = 'both'

# Actors
COACH = 'coach'
CLIENT = 'client'
SYSTEM = 'system'

# Notification kinds
SESSION_BOOKED = 'session_booked'
SESSION_CONFIRMED = 'session_confirmed'
SESSION_CANCELED = 'session_canceled'
SESSION_REMINDER = 'session_reminder'
SESSION_STARTING = 'session_starting'

DEFAULT_SLOT_DURATION = 60
MIN_SLOT_DURATION = 15
MAX_SLOT_DURATION = 180

HHMM_PATTERN = r'^([01]\d|2[0-3]):([0-5]\d)$'


@dataclass
class TimeSlotData:
    """DTO for slot creation."""
    start_time: str
    end_time: str
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None
    duration: int = DEFAULT_SLOT_DURATION
    medium: str = ONLINE
    notes: str = ''

    @property
    def is_recurring(self) -> bool:
        return self.specific_date is None


@dataclass
class TimeSlotUpdateData:
    """DTO for slot update operations."""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_available: Optional[bool] = None
    medium: Optional[str] = None
    duration: Optional[int] = None
    notes: Optional[str] = None


@dataclass
class BookingRequest:
    """DTO for a client's booking request."""
    coach_id: int
    scheduled_date: date
    start_time: str
    end_time: str
    medium: Optional[str] = None
    title: str = ''
    notes: str = ''
    slot_id: Optional[int] = None


@dataclass
class SessionFilters:
    """DTO for session listing filters."""
    role: Optional[str] = None
    status: Optional[str] = None
    upcoming: bool = False
    on_date: Optional[date] = None


@dataclass
class SessionUpdateData:
    """DTO for session update operations."""
    status: Optional[str] = None
    notes: Optional[str] = None
    coach_notes: Optional[str] = None
    client_notes: Optional[str] = None
    meeting_link: Optional[str] = None
    location: Optional[str] = None
    cancel_reason: Optional[str] = None

    def field_writes(self) -> List[str]:
        """Names of the plain fields this patch writes."""
        names = ['notes', 'coach_notes', 'client_notes', 'meeting_link', 'location']
        return [name for name in names if getattr(self, name) is not None]


@dataclass
class DaySlot:
    """One slot on one day of a coach's availability."""
    slot_id: int
    start_time: str
    end_time: str
    duration: int
    medium: str
    is_booked: bool = False


@dataclass
class DayAvailability:
    """Availability of a coach on a single calendar day."""
    date: date
    slots: List[DaySlot] = field(default_factory=list)


@dataclass
class SweepResult:
    """Summary of one scheduler sweep."""
    sent: int = 0
    failed: int = 0
    transitioned: int = 0
    skipped: bool = False
    timed_out: bool = False
