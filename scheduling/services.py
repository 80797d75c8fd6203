"""
Service layer for coach scheduling business logic.
Services are framework-agnostic and handle all business operations.

Every write to a TimeSlot or Session goes through this module; the
Reminder Scheduler uses the same entry points.
"""

import calendar
import logging
import re
from datetime import date, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from . import notifications, types
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidSlotError,
    InvalidTransitionError,
    NotFoundError,
    OverlapError,
    SlotTakenError,
    ValidationError,
)
from .models import Session, TimeSlot
from .overlap import day_of_week, find_conflicts
from .transitions import apply_transition, check_field_writes
from .types import (
    BookingRequest,
    DayAvailability,
    DaySlot,
    SessionFilters,
    SessionUpdateData,
    TimeSlotData,
    TimeSlotUpdateData,
)

logger = logging.getLogger(__name__)

REMINDER_FLAGS = ('reminder_60_sent', 'reminder_30_sent', 'starting_now_sent')
_TRANSITION_FIELDS = ['status', 'completed_at', 'canceled_at', 'canceled_by', 'cancel_reason']

_HHMM = re.compile(types.HHMM_PATTERN)


# Time slots

@transaction.atomic
def create_time_slot(coach_id: int, data: TimeSlotData) -> TimeSlot:
    """
    Create an availability window for a coach.

    Args:
        coach_id: id of the owning coach
        data: TimeSlotData with the slot definition

    Returns:
        Created TimeSlot instance

    Raises:
        ValidationError: If the time range or day key is invalid
        OverlapError: If the slot overlaps an available slot on the same day key
    """
    _validate_time_range(data.start_time, data.end_time)
    _validate_slot_options(data.medium, data.duration)
    weekday = _resolve_day_key(data.day_of_week, data.specific_date)

    # Serialize slot creation per coach so concurrent creates see each other
    _lock_user(coach_id)

    # Siblings share the day key: the weekday for recurring slots, the date for one-time slots
    siblings = TimeSlot.objects.for_coach(coach_id).available().for_day_key(
        weekday, data.specific_date
    )

    conflicts = find_conflicts(data.start_time, data.end_time, siblings)
    if conflicts:
        logger.info(
            "Rejected slot %s-%s for coach %s: overlaps slot %s",
            data.start_time, data.end_time, coach_id, conflicts[0].pk,
        )
        raise OverlapError()

    slot = TimeSlot.objects.create(
        coach_id=coach_id,
        day_of_week=weekday,
        specific_date=data.specific_date,
        start_time=data.start_time,
        end_time=data.end_time,
        duration=data.duration,
        medium=data.medium,
        notes=data.notes,
        is_available=True,
    )
    logger.info("Coach %s created slot %s (%s)", coach_id, slot.pk, slot)
    return slot


def list_time_slots(coach_id: int) -> List[TimeSlot]:
    """Get all slots of a coach ordered by day key and start time."""
    return list(
        TimeSlot.objects.for_coach(coach_id).order_by('day_of_week', 'specific_date', 'start_time')
    )


@transaction.atomic
def update_time_slot(coach_id: int, slot_id: int, update_data: TimeSlotUpdateData) -> TimeSlot:
    """
    Apply a partial update to a coach's slot.

    Overlap with sibling slots is not re-validated here.

    Raises:
        NotFoundError: If the slot does not exist
        ForbiddenError: If the slot belongs to another coach
        ValidationError: If the resulting time range is invalid
    """
    slot = _owned_slot(coach_id, slot_id, for_update=True)

    start_time = update_data.start_time or slot.start_time
    end_time = update_data.end_time or slot.end_time
    _validate_time_range(start_time, end_time)
    _validate_slot_options(
        update_data.medium or slot.medium,
        update_data.duration if update_data.duration is not None else slot.duration,
    )

    fields_to_update = {
        'start_time': update_data.start_time,
        'end_time': update_data.end_time,
        'is_available': update_data.is_available,
        'medium': update_data.medium,
        'duration': update_data.duration,
        'notes': update_data.notes,
    }
    _apply_field_updates(slot, fields_to_update)
    slot.save()

    if update_data.start_time or update_data.end_time:
        logger.debug("Slot %s bounds changed without sibling overlap check", slot.pk)
    return slot


@transaction.atomic
def delete_time_slot(coach_id: int, slot_id: int, today: Optional[date] = None) -> None:
    """
    Delete a coach's slot unless upcoming sessions still reference it.

    Raises:
        NotFoundError: If the slot does not exist
        ForbiddenError: If the slot belongs to another coach
        ConflictError: If an active session dated today or later uses the slot
    """
    slot = _owned_slot(coach_id, slot_id, for_update=True)
    today = today or timezone.localdate()

    upcoming = Session.objects.get_queryset().referencing_slot(slot.pk).active().filter(
        scheduled_date__gte=today
    )
    if upcoming.exists():
        raise ConflictError(
            'Cannot delete this slot as there are upcoming sessions. Cancel the sessions first.'
        )

    slot.delete()
    logger.info("Coach %s deleted slot %s", coach_id, slot_id)


# Availability

def get_availability(coach_id: int, start_date: date, end_date: date) -> List[DayAvailability]:
    """
    Build a coach's per-day availability over an inclusive date range.

    Recurring slots apply to every matching weekday; one-time slots only to
    their date. A slot is booked when an active session shares its date,
    start and end.

    Raises:
        ValidationError: If the range is inverted or too long
    """
    if end_date < start_date:
        raise ValidationError('End date must not be before start date.')

    max_days = getattr(settings, 'SCHEDULING_MAX_AVAILABILITY_DAYS', 62)
    if (end_date - start_date).days + 1 > max_days:
        raise ValidationError(f"Availability can be requested for at most {max_days} days.")

    slots = list(
        TimeSlot.objects.for_coach(coach_id).available().filter(
            specific_date__isnull=True
        )
    ) + list(
        TimeSlot.objects.for_coach(coach_id).available().filter(
            specific_date__gte=start_date,
            specific_date__lte=end_date,
        )
    )
    booked = {
        (s.scheduled_date, s.start_time, s.end_time)
        for s in Session.objects.for_coach(coach_id).active().in_range(start_date, end_date)
    }

    availability = []
    current = start_date
    while current <= end_date:
        weekday = day_of_week(current)
        day_slots = [
            DaySlot(
                slot_id=slot.pk,
                start_time=slot.start_time,
                end_time=slot.end_time,
                duration=slot.duration,
                medium=slot.medium,
                is_booked=(current, slot.start_time, slot.end_time) in booked,
            )
            for slot in slots
            if (slot.specific_date == current)
            or (slot.specific_date is None and slot.day_of_week == weekday)
        ]
        day_slots.sort(key=lambda s: s.start_time)
        availability.append(DayAvailability(date=current, slots=day_slots))
        current += timedelta(days=1)

    return availability


def get_coach_calendar(coach_id: int, year: int, month: int) -> Dict[str, List[Session]]:
    """
    Group a coach's sessions of one month by ISO date.

    Raises:
        ValidationError: If the month is not 1-12
    """
    if not 1 <= month <= 12:
        raise ValidationError('Month must be between 1 and 12.')

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    sessions = Session.objects.for_coach(coach_id).in_range(first, last).ordered().select_related('client')

    grouped: Dict[str, List[Session]] = {}
    for session in sessions:
        grouped.setdefault(session.scheduled_date.isoformat(), []).append(session)
    return grouped


# Booking

def book_session(client_id: int, request: BookingRequest, sink=None) -> Session:
    """
    Book a session with a coach inside one of the coach's open slots.

    Args:
        client_id: id of the booking client
        request: BookingRequest describing the wanted date and time
        sink: NotificationSink (default: configured sink)

    Returns:
        Created Session in the 'scheduled' state

    Raises:
        ValidationError: If the time range is invalid or the client is the coach
        InvalidSlotError: If no available slot of the coach matches the time
        SlotTakenError: If an active session already starts at that time
    """
    _validate_time_range(request.start_time, request.end_time)
    if request.coach_id == client_id:
        raise ValidationError('You cannot book a session with yourself.')

    session = _create_booking(client_id, request)
    logger.info(
        "Client %s booked session %s with coach %s on %s at %s",
        client_id, session.pk, request.coach_id, request.scheduled_date, request.start_time,
    )

    notifications.notify_session_booked(sink or notifications.get_notification_sink(), session)
    return session


@transaction.atomic
def _create_booking(client_id: int, request: BookingRequest) -> Session:
    """Match the slot, check the time is free and insert the session."""
    slot = _find_open_slot(request)

    if request.medium and slot.medium != types.BOTH and request.medium != slot.medium:
        raise InvalidSlotError(f"This slot is only available {slot.medium}.")

    if _slot_is_taken(request.coach_id, request.scheduled_date, request.start_time):
        raise SlotTakenError()

    medium = request.medium or (types.ONLINE if slot.medium == types.BOTH else slot.medium)
    try:
        with transaction.atomic():
            return Session.objects.create(
                coach_id=request.coach_id,
                client_id=client_id,
                time_slot=slot,
                scheduled_date=request.scheduled_date,
                start_time=request.start_time,
                end_time=request.end_time,
                duration=slot.duration,
                medium=medium,
                title=request.title or '',
                notes=request.notes or '',
                status=types.SCHEDULED,
            )
    except IntegrityError:
        # A concurrent booking won the unique (coach, date, start) constraint
        logger.info(
            "Concurrent booking for coach %s on %s at %s rejected",
            request.coach_id, request.scheduled_date, request.start_time,
        )
        raise SlotTakenError()


def _find_open_slot(request: BookingRequest) -> TimeSlot:
    weekday = day_of_week(request.scheduled_date)
    candidates = TimeSlot.objects.for_coach(request.coach_id).available().spanning(
        request.start_time, request.end_time
    ).open_on(request.scheduled_date, weekday)

    if request.slot_id is not None:
        candidates = candidates.filter(pk=request.slot_id)

    matches = list(candidates)
    if not matches:
        raise InvalidSlotError()

    # Prefer a slot pinned to the date over the weekly one
    matches.sort(key=lambda slot: slot.specific_date is None)
    return matches[0]


def _slot_is_taken(coach_id: int, day: date, start_time: str) -> bool:
    return Session.objects.active().starting_at(coach_id, day, start_time).exists()


# Sessions

def get_session(session_id: int, actor_id: int) -> Session:
    """
    Get a session the actor participates in.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the actor is neither its coach nor its client
    """
    session = Session.objects.select_related('coach', 'client').filter(pk=session_id).first()
    if session is None:
        raise NotFoundError('Session not found.')
    _require_participant(session, actor_id)
    return session


def list_sessions(actor_id: int, filters: Optional[SessionFilters] = None,
                  today: Optional[date] = None) -> List[Session]:
    """
    List the actor's sessions ordered by date and start time.

    Args:
        actor_id: id of the requesting user
        filters: SessionFilters (role, status, upcoming, on_date)
        today: reference date for the 'upcoming' filter (default: local today)
    """
    filters = filters or SessionFilters()
    queryset = Session.objects.get_queryset()

    if filters.role == types.COACH:
        queryset = queryset.for_coach(actor_id)
    elif filters.role == types.CLIENT:
        queryset = queryset.for_client(actor_id)
    else:
        queryset = queryset.for_participant(actor_id)

    if filters.status:
        queryset = queryset.filter(status=filters.status)
    if filters.upcoming:
        queryset = queryset.upcoming(today or timezone.localdate())
    if filters.on_date:
        queryset = queryset.on_date(filters.on_date)

    return list(queryset.ordered().select_related('coach', 'client'))


def update_session(session_id: int, actor_id: int, update_data: SessionUpdateData,
                   sink=None, now=None) -> Session:
    """
    Apply a participant's patch (status change and/or fields) to a session.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the actor is not a participant or writes a field
            reserved for the other party
        InvalidTransitionError: If the status change is not allowed
        ValidationError: If a cancel reason is sent without canceling
        ConflictError: If the session changed concurrently
    """
    now = now or timezone.now()

    if update_data.cancel_reason is not None and update_data.status != types.CANCELED:
        raise ValidationError('A cancel reason can only be given when canceling.')

    with transaction.atomic():
        session = _locked_session(session_id)
        role = _require_participant(session, actor_id)
        field_names = update_data.field_writes()
        check_field_writes(field_names, role)

        changed = list(field_names)
        if update_data.status is not None:
            apply_transition(session, update_data.status, role, now, update_data.cancel_reason or '')
            changed += _TRANSITION_FIELDS

        for name in field_names:
            setattr(session, name, getattr(update_data, name))

        if changed:
            _save_versioned(session, changed, now)

    if update_data.status is not None:
        logger.info("Session %s moved to %s by %s %s", session.pk, session.status, role, actor_id)
        _notify_status_change(sink, session, role)
    return session


def cancel_session(session_id: int, actor_id: int, reason: str = '', sink=None, now=None) -> Session:
    """
    Cancel a scheduled or confirmed session and notify the other party.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the actor is not a participant
        InvalidTransitionError: If the session is not scheduled or confirmed
        ConflictError: If the session changed concurrently
    """
    now = now or timezone.now()

    with transaction.atomic():
        session = _locked_session(session_id)
        role = _require_participant(session, actor_id)
        if session.status not in types.CANCELABLE_STATUSES:
            raise InvalidTransitionError('This session cannot be canceled.')
        apply_transition(session, types.CANCELED, role, now, reason)
        _save_versioned(session, _TRANSITION_FIELDS, now)

    logger.info("Session %s canceled by %s %s", session.pk, role, actor_id)
    notifications.notify_session_canceled(sink or notifications.get_notification_sink(), session, role)
    return session


def transition_session(session_id: int, target: str, actor: str = types.SYSTEM, now=None) -> Session:
    """
    Move a session to ``target`` on behalf of the system.

    Used by the Reminder Scheduler; raises the same errors as update_session.
    """
    now = now or timezone.now()

    with transaction.atomic():
        session = _locked_session(session_id)
        apply_transition(session, target, actor, now)
        _save_versioned(session, _TRANSITION_FIELDS, now)

    logger.info("Session %s moved to %s by %s", session.pk, target, actor)
    return session


def mark_reminder_sent(session_id: int, flag: str, now=None) -> bool:
    """
    Set a reminder idempotency flag.

    Returns:
        True if this call set the flag, False if it was already set
    """
    if flag not in REMINDER_FLAGS:
        raise ValueError(f"Unknown reminder flag: {flag}")

    updated = Session.objects.filter(pk=session_id, **{flag: False}).update(
        version=F('version') + 1,
        updated_at=now or timezone.now(),
        **{flag: True}
    )
    return updated == 1


# Helpers

def _notify_status_change(sink, session: Session, role: str) -> None:
    if session.status == types.CONFIRMED:
        notifications.notify_session_confirmed(sink or notifications.get_notification_sink(), session)
    elif session.status == types.CANCELED:
        notifications.notify_session_canceled(sink or notifications.get_notification_sink(), session, role)


def _locked_session(session_id: int) -> Session:
    session = Session.objects.select_for_update().filter(pk=session_id).first()
    if session is None:
        raise NotFoundError('Session not found.')
    return session


def _require_participant(session: Session, actor_id: int) -> str:
    role = session.role_of(actor_id)
    if role is None:
        raise ForbiddenError('You are not part of this session.')
    return role


def _save_versioned(session: Session, fields: List[str], now) -> None:
    """Persist ``fields`` only if nobody else wrote the session meanwhile."""
    values = {name: getattr(session, name) for name in set(fields)}
    updated = Session.objects.filter(pk=session.pk, version=session.version).update(
        version=F('version') + 1,
        updated_at=now,
        **values
    )
    if updated == 0:
        raise ConflictError('The session was changed by another request. Please retry.')
    session.version += 1
    session.updated_at = now


def _owned_slot(coach_id: int, slot_id: int, for_update: bool = False) -> TimeSlot:
    queryset = TimeSlot.objects.select_for_update() if for_update else TimeSlot.objects.all()
    slot = queryset.filter(pk=slot_id).first()
    if slot is None:
        raise NotFoundError('Time slot not found.')
    if slot.coach_id != coach_id:
        raise ForbiddenError('You can only manage your own time slots.')
    return slot


def _lock_user(user_id: int) -> None:
    list(get_user_model().objects.select_for_update().filter(pk=user_id).values_list('pk', flat=True))


def _validate_time_range(start_time: str, end_time: str) -> None:
    """Validate HH:MM format and that the end is after the start."""
    for value in (start_time, end_time):
        if not isinstance(value, str) or not _HHMM.match(value):
            raise ValidationError('Times must be in HH:MM format (24h).')
    if start_time >= end_time:
        raise ValidationError('End time must be after start time.')


def _validate_slot_options(medium: str, duration: int) -> None:
    if medium not in (types.ONLINE, types.IN_PERSON, types.BOTH):
        raise ValidationError(f"Unknown session medium: {medium}")
    if not types.MIN_SLOT_DURATION <= duration <= types.MAX_SLOT_DURATION:
        raise ValidationError(
            f"Duration must be between {types.MIN_SLOT_DURATION} and {types.MAX_SLOT_DURATION} minutes."
        )


def _resolve_day_key(weekday: Optional[int], specific_date: Optional[date]) -> int:
    """Return the day-of-week a new slot is filed under."""
    if specific_date is not None:
        return day_of_week(specific_date)
    if weekday is None:
        raise ValidationError('A recurring slot needs a day of week.')
    if not 0 <= weekday <= 6:
        raise ValidationError('Day of week must be between 0 (Sunday) and 6 (Saturday).')
    return weekday


def _apply_field_updates(obj, fields: dict) -> None:
    """Apply field updates to object if values are not None (DRY helper)."""
    for field_name, value in fields.items():
        if value is not None:
            setattr(obj, field_name, value)
