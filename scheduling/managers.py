"""
Custom managers and querysets for scheduling models.

QuerySets define chainable query methods.
Managers use QuerySets to enable method chaining.
No business logic should be here - only query operations.
"""

from django.db import models

from . import types


class TimeSlotQuerySet(models.QuerySet):
    """Custom queryset for TimeSlot model with chainable methods."""

    def for_coach(self, coach_id):
        """Get all slots owned by a coach."""
        return self.filter(coach_id=coach_id)

    def available(self):
        """Get slots currently open for booking."""
        return self.filter(is_available=True)

    def recurring(self):
        """Get weekly recurring slots."""
        return self.filter(specific_date__isnull=True)

    def for_day_key(self, day_of_week, specific_date=None):
        """
        Get slots sharing a day key with a candidate slot.

        Args:
            day_of_week: int (0=Sunday, 6=Saturday), used for recurring slots
            specific_date: date object for one-time slots (None = recurring)
        """
        if specific_date is None:
            return self.recurring().filter(day_of_week=day_of_week)
        return self.filter(specific_date=specific_date)

    def open_on(self, day, weekday):
        """
        Get slots that apply to a calendar day.

        Args:
            day: date object
            weekday: int day-of-week of ``day`` (0=Sunday)
        """
        return self.filter(
            models.Q(specific_date__isnull=True, day_of_week=weekday)
            | models.Q(specific_date=day)
        )

    def spanning(self, start_time, end_time):
        """Get slots with exactly these bounds."""
        return self.filter(start_time=start_time, end_time=end_time)


class TimeSlotManager(models.Manager):
    """Custom manager for TimeSlot model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return TimeSlotQuerySet(self.model, using=self._db)

    def for_coach(self, coach_id):
        """Get all slots owned by a coach."""
        return self.get_queryset().for_coach(coach_id)

    def available(self):
        """Get slots currently open for booking."""
        return self.get_queryset().available()


class SessionQuerySet(models.QuerySet):
    """Custom queryset for Session model with chainable methods."""

    def active(self):
        """Get non-terminal sessions (scheduled, confirmed, in progress)."""
        return self.filter(status__in=types.ACTIVE_STATUSES)

    def for_coach(self, coach_id):
        return self.filter(coach_id=coach_id)

    def for_client(self, client_id):
        return self.filter(client_id=client_id)

    def for_participant(self, user_id):
        """Get sessions where the user is either the coach or the client."""
        return self.filter(models.Q(coach_id=user_id) | models.Q(client_id=user_id))

    def on_date(self, day):
        return self.filter(scheduled_date=day)

    def in_range(self, start_date, end_date):
        """
        Get sessions within an inclusive date range.

        Args:
            start_date: date object
            end_date: date object
        """
        return self.filter(
            scheduled_date__gte=start_date,
            scheduled_date__lte=end_date
        )

    def starting_at(self, coach_id, day, start_time):
        """Get the coach's sessions that start at a given date and time."""
        return self.filter(coach_id=coach_id, scheduled_date=day, start_time=start_time)

    def upcoming(self, today):
        """Get scheduled or confirmed sessions dated today or later."""
        return self.filter(
            scheduled_date__gte=today,
            status__in=types.UPCOMING_STATUSES
        )

    def referencing_slot(self, slot_id):
        return self.filter(time_slot_id=slot_id)

    def awaiting(self, flag):
        """
        Get sessions whose reminder flag is not set yet.

        Args:
            flag: name of a reminder flag field, e.g. 'reminder_60_sent'
        """
        return self.filter(**{flag: False})

    def ordered(self):
        return self.order_by('scheduled_date', 'start_time')


class SessionManager(models.Manager):
    """Custom manager for Session model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return SessionQuerySet(self.model, using=self._db)

    def active(self):
        """Get non-terminal sessions."""
        return self.get_queryset().active()

    def for_participant(self, user_id):
        """Get sessions where the user is either the coach or the client."""
        return self.get_queryset().for_participant(user_id)

    def for_coach(self, coach_id):
        return self.get_queryset().for_coach(coach_id)
