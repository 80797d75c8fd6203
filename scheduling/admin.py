"""
Admin configuration for the scheduling app.
"""

from django.contrib import admin
from .models import Notification, Session, TimeSlot


@admin.register(TimeSlot)
class TimeSlotAdmin(admin.ModelAdmin):
    """Admin interface for TimeSlot model."""

    list_display = ['coach', 'weekday_name', 'specific_date', 'start_time', 'end_time', 'medium', 'is_available']
    list_filter = ['is_available', 'day_of_week', 'medium']
    search_fields = ['coach__username', 'notes']

    fieldsets = (
        ('Owner', {
            'fields': ('coach', 'is_available')
        }),
        ('Window', {
            'fields': ('day_of_week', 'specific_date', 'start_time', 'end_time')
        }),
        ('Session Defaults', {
            'fields': ('duration', 'medium', 'notes')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = ['created_at', 'updated_at']


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    """Read-mostly admin for Session; status changes belong to the API."""

    list_display = ['scheduled_date', 'start_time', 'end_time', 'coach', 'client', 'status', 'medium']
    list_filter = ['status', 'medium', 'scheduled_date']
    search_fields = ['title', 'coach__username', 'client__username']
    date_hierarchy = 'scheduled_date'

    fieldsets = (
        ('Participants', {
            'fields': ('coach', 'client', 'time_slot')
        }),
        ('Schedule', {
            'fields': ('scheduled_date', 'start_time', 'end_time', 'duration', 'medium')
        }),
        ('Status', {
            'fields': ('status', 'completed_at', 'canceled_at', 'canceled_by', 'cancel_reason')
        }),
        ('Details', {
            'fields': ('title', 'notes', 'coach_notes', 'client_notes', 'meeting_link', 'location')
        }),
        ('Reminders', {
            'fields': ('reminder_60_sent', 'reminder_30_sent', 'starting_now_sent'),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = [
        'status', 'completed_at', 'canceled_at', 'canceled_by', 'cancel_reason',
        'reminder_60_sent', 'reminder_30_sent', 'starting_now_sent',
    ]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'kind', 'title', 'read', 'created_at']
    list_filter = ['kind', 'read']
    search_fields = ['title', 'body']
