"""
Serializers for the coach scheduling API.
"""

from rest_framework import serializers

from . import types
from .models import Session, TimeSlot


HHMM_ERROR = {'invalid': 'Time must be in HH:MM format (24h).'}


def _hhmm_field(**kwargs):
    return serializers.RegexField(types.HHMM_PATTERN, error_messages=HHMM_ERROR, **kwargs)


class TimeSlotReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying TimeSlot (output)."""

    weekday_name = serializers.ReadOnlyField()
    is_recurring = serializers.ReadOnlyField()

    class Meta:
        model = TimeSlot
        fields = [
            'id',
            'coach',
            'day_of_week',
            'weekday_name',
            'specific_date',
            'is_recurring',
            'start_time',
            'end_time',
            'duration',
            'medium',
            'is_available',
            'notes',
            'created_at',
            'updated_at',
        ]


class TimeSlotCreateSerializer(serializers.Serializer):
    """Serializer for creating a recurring or one-time slot."""

    day_of_week = serializers.IntegerField(min_value=0, max_value=6, required=False, allow_null=True)
    specific_date = serializers.DateField(required=False, allow_null=True)
    start_time = _hhmm_field()
    end_time = _hhmm_field()
    duration = serializers.IntegerField(
        min_value=types.MIN_SLOT_DURATION,
        max_value=types.MAX_SLOT_DURATION,
        default=types.DEFAULT_SLOT_DURATION
    )
    medium = serializers.ChoiceField(choices=TimeSlot.MEDIUM_CHOICES, default=types.ONLINE)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        """Validate slot data."""
        if data['start_time'] >= data['end_time']:
            raise serializers.ValidationError({
                'end_time': 'End time must be after start time.'
            })

        if data.get('specific_date') is None and data.get('day_of_week') is None:
            raise serializers.ValidationError({
                'day_of_week': 'Give a day of week for a recurring slot or a specific date.'
            })

        return data


class TimeSlotUpdateSerializer(serializers.Serializer):
    """Serializer for updating a slot."""

    start_time = _hhmm_field(required=False)
    end_time = _hhmm_field(required=False)
    is_available = serializers.BooleanField(required=False)
    medium = serializers.ChoiceField(choices=TimeSlot.MEDIUM_CHOICES, required=False)
    duration = serializers.IntegerField(
        min_value=types.MIN_SLOT_DURATION,
        max_value=types.MAX_SLOT_DURATION,
        required=False
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class AvailabilityQuerySerializer(serializers.Serializer):
    """Serializer for availability query parameters."""

    start_date = serializers.DateField(required=True)
    end_date = serializers.DateField(required=True)

    def validate(self, data):
        """Ensure the range is not inverted."""
        if data['end_date'] < data['start_date']:
            raise serializers.ValidationError(
                "End date must not be before start date."
            )
        return data


class DaySlotSerializer(serializers.Serializer):
    slot_id = serializers.IntegerField()
    start_time = serializers.CharField()
    end_time = serializers.CharField()
    duration = serializers.IntegerField()
    medium = serializers.CharField()
    is_booked = serializers.BooleanField()


class DayAvailabilitySerializer(serializers.Serializer):
    date = serializers.DateField()
    slots = DaySlotSerializer(many=True)


class BookSessionSerializer(serializers.Serializer):
    """Serializer for a client's booking request."""

    coach_id = serializers.IntegerField()
    scheduled_date = serializers.DateField()
    start_time = _hhmm_field()
    end_time = _hhmm_field()
    medium = serializers.ChoiceField(choices=Session.MEDIUM_CHOICES, required=False)
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    slot_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, data):
        if data['start_time'] >= data['end_time']:
            raise serializers.ValidationError({
                'end_time': 'End time must be after start time.'
            })
        return data


class SessionReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying Session (output)."""

    class Meta:
        model = Session
        fields = [
            'id',
            'coach',
            'client',
            'time_slot',
            'scheduled_date',
            'start_time',
            'end_time',
            'duration',
            'medium',
            'status',
            'title',
            'notes',
            'coach_notes',
            'client_notes',
            'meeting_link',
            'location',
            'canceled_at',
            'canceled_by',
            'cancel_reason',
            'completed_at',
            'reminder_60_sent',
            'reminder_30_sent',
            'starting_now_sent',
            'version',
            'created_at',
            'updated_at',
        ]


class SessionUpdateSerializer(serializers.Serializer):
    """Serializer for a participant's session patch."""

    status = serializers.ChoiceField(choices=Session.STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    coach_notes = serializers.CharField(required=False, allow_blank=True)
    client_notes = serializers.CharField(required=False, allow_blank=True)
    meeting_link = serializers.CharField(max_length=500, required=False, allow_blank=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    cancel_reason = serializers.CharField(required=False, allow_blank=True)


class SessionCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class SessionListQuerySerializer(serializers.Serializer):
    """Serializer for session list query parameters."""

    role = serializers.ChoiceField(choices=[types.COACH, types.CLIENT], required=False)
    status = serializers.ChoiceField(choices=Session.STATUS_CHOICES, required=False)
    upcoming = serializers.BooleanField(required=False, default=False)
    date = serializers.DateField(required=False)


class CalendarQuerySerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=1970, max_value=9999)
    month = serializers.IntegerField(min_value=1, max_value=12)
