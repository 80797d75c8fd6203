"""
Models for the coach scheduling engine.

- TimeSlot stores the availability windows a coach declares open, either
  weekly recurring (day_of_week) or one-time (specific_date)
- Session stores every concrete booking between a coach and a client
- Notification stores messages delivered by the database notification sink
"""

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models

from . import types
from .managers import SessionManager, TimeSlotManager
from .overlap import combine, day_of_week


hhmm_validator = RegexValidator(
    regex=types.HHMM_PATTERN,
    message='Time must be in HH:MM format (24h).'
)


class TimeSlot(models.Model):
    """
    An availability window declared by a coach.

    Recurring slots repeat every week on ``day_of_week``. One-time slots are
    pinned to ``specific_date``; their ``day_of_week`` is derived from it.
    """

    WEEKDAY_CHOICES = [
        (0, 'Sunday'),
        (1, 'Monday'),
        (2, 'Tuesday'),
        (3, 'Wednesday'),
        (4, 'Thursday'),
        (5, 'Friday'),
        (6, 'Saturday'),
    ]

    MEDIUM_CHOICES = [
        (types.ONLINE, 'Online'),
        (types.IN_PERSON, 'In person'),
        (types.BOTH, 'Both'),
    ]

    coach = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='time_slots'
    )
    day_of_week = models.IntegerField(
        choices=WEEKDAY_CHOICES,
        help_text="Day of week (0=Sunday, 6=Saturday)"
    )
    specific_date = models.DateField(
        null=True,
        blank=True,
        help_text="Date of a one-time slot (null = weekly recurring)"
    )
    start_time = models.CharField(max_length=5, validators=[hhmm_validator])
    end_time = models.CharField(max_length=5, validators=[hhmm_validator])
    duration = models.PositiveIntegerField(
        default=types.DEFAULT_SLOT_DURATION,
        validators=[
            MinValueValidator(types.MIN_SLOT_DURATION),
            MaxValueValidator(types.MAX_SLOT_DURATION),
        ],
        help_text="Default session duration in minutes"
    )
    medium = models.CharField(
        max_length=20,
        choices=MEDIUM_CHOICES,
        default=types.ONLINE
    )
    is_available = models.BooleanField(
        default=True,
        help_text="Whether clients can currently book this slot"
    )
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TimeSlotManager()

    class Meta:
        ordering = ['day_of_week', 'specific_date', 'start_time']
        indexes = [
            models.Index(fields=['coach', 'day_of_week'], name='slot_coach_weekday_idx'),
            models.Index(fields=['coach', 'specific_date'], name='slot_coach_date_idx'),
        ]

    def __str__(self):
        when = self.specific_date.isoformat() if self.specific_date else f"every {self.weekday_name}"
        return f"{when} {self.start_time}-{self.end_time}"

    @property
    def weekday_name(self):
        """Get human-readable weekday name."""
        return dict(self.WEEKDAY_CHOICES).get(self.day_of_week, 'Unknown')

    @property
    def is_recurring(self):
        return self.specific_date is None

    def clean(self):
        """Validate slot data."""
        super().clean()

        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError({
                'end_time': 'End time must be after start time.'
            })

    def save(self, *args, **kwargs):
        """Save with validation, deriving day_of_week for one-time slots."""
        if self.specific_date is not None:
            self.day_of_week = day_of_week(self.specific_date)
        self.full_clean()
        super().save(*args, **kwargs)


class Session(models.Model):
    """
    A concrete booked appointment between one coach and one client.

    Writes go through the service layer, which bumps ``version`` on every
    change so concurrent writers can detect each other.
    """

    STATUS_CHOICES = [
        (types.SCHEDULED, 'Scheduled'),
        (types.CONFIRMED, 'Confirmed'),
        (types.IN_PROGRESS, 'In progress'),
        (types.COMPLETED, 'Completed'),
        (types.CANCELED, 'Canceled'),
        (types.NO_SHOW, 'No-show'),
    ]

    MEDIUM_CHOICES = [
        (types.ONLINE, 'Online'),
        (types.IN_PERSON, 'In person'),
    ]

    CANCELED_BY_CHOICES = [
        (types.COACH, 'Coach'),
        (types.CLIENT, 'Client'),
    ]

    coach = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='coached_sessions'
    )
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='booked_sessions'
    )
    time_slot = models.ForeignKey(
        TimeSlot,
        on_delete=models.SET_NULL,
        related_name='sessions',
        null=True,
        blank=True,
        help_text="Availability window this session was booked from"
    )

    scheduled_date = models.DateField()
    start_time = models.CharField(max_length=5, validators=[hhmm_validator])
    end_time = models.CharField(max_length=5, validators=[hhmm_validator])
    duration = models.PositiveIntegerField(default=types.DEFAULT_SLOT_DURATION)
    medium = models.CharField(
        max_length=20,
        choices=MEDIUM_CHOICES,
        default=types.ONLINE
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=types.SCHEDULED
    )

    title = models.CharField(max_length=200, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    coach_notes = models.TextField(blank=True, default='')
    client_notes = models.TextField(blank=True, default='')
    meeting_link = models.CharField(max_length=500, blank=True, default='')
    location = models.CharField(max_length=255, blank=True, default='')

    canceled_at = models.DateTimeField(null=True, blank=True)
    canceled_by = models.CharField(
        max_length=10,
        choices=CANCELED_BY_CHOICES,
        blank=True,
        default=''
    )
    cancel_reason = models.TextField(blank=True, default='')
    completed_at = models.DateTimeField(null=True, blank=True)

    reminder_60_sent = models.BooleanField(default=False)
    reminder_30_sent = models.BooleanField(default=False)
    starting_now_sent = models.BooleanField(default=False)

    version = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SessionManager()

    class Meta:
        ordering = ['scheduled_date', 'start_time']
        indexes = [
            models.Index(fields=['coach', 'scheduled_date'], name='session_coach_date_idx'),
            models.Index(fields=['client', 'scheduled_date'], name='session_client_date_idx'),
            models.Index(fields=['coach', 'status'], name='session_coach_status_idx'),
            models.Index(fields=['scheduled_date', 'status'], name='session_date_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['coach', 'scheduled_date', 'start_time'],
                condition=models.Q(status__in=types.ACTIVE_STATUSES),
                name='unique_active_session_per_coach_start',
            ),
        ]

    def __str__(self):
        return f"{self.scheduled_date.isoformat()} {self.start_time}-{self.end_time} [{self.status}]"

    @property
    def starts_at(self):
        """Aware start instant in the project's wall-clock timezone."""
        return combine(self.scheduled_date, self.start_time)

    def role_of(self, user_id):
        """
        Get the role a user plays on this session.

        Returns:
            'coach', 'client' or None when the user is not a participant
        """
        if self.coach_id == user_id:
            return types.COACH
        if self.client_id == user_id:
            return types.CLIENT
        return None

    def clean(self):
        """Validate session data."""
        super().clean()

        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError({
                'end_time': 'End time must be after start time.'
            })

    def save(self, *args, **kwargs):
        """Save with field validation; uniqueness is left to the database."""
        self.full_clean(validate_unique=False, validate_constraints=False)
        super().save(*args, **kwargs)


class Notification(models.Model):
    """A message stored by the database notification sink."""

    KIND_CHOICES = [
        (types.SESSION_BOOKED, 'Session booked'),
        (types.SESSION_CONFIRMED, 'Session confirmed'),
        (types.SESSION_CANCELED, 'Session canceled'),
        (types.SESSION_REMINDER, 'Session reminder'),
        (types.SESSION_STARTING, 'Session starting'),
    ]

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='scheduling_notifications'
    )
    kind = models.CharField(max_length=30, choices=KIND_CHOICES)
    title = models.CharField(max_length=200)
    body = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'read'], name='notification_unread_idx'),
        ]

    def __str__(self):
        return f"{self.kind} -> {self.recipient_id}: {self.title}"
