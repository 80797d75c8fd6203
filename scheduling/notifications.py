"""
Notification and identity collaborators.

The engine only talks to a ``NotificationSink`` (``notify(recipient_id,
kind, payload)``) and to ``get_display_name``. Delivery is best-effort:
``deliver`` never lets a sink failure reach the caller.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils.module_loading import import_string

from . import types

logger = logging.getLogger(__name__)


@dataclass
class DisplayName:
    first_name: str
    last_name: str

    @property
    def full(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def get_display_name(user_id) -> Optional[DisplayName]:
    """
    Look up the human-readable name of a user.

    Falls back to the username when first and last name are blank.
    Returns None for unknown users.
    """
    user = get_user_model().objects.filter(pk=user_id).first()
    if user is None:
        return None
    if not (user.first_name or user.last_name):
        return DisplayName(first_name=user.get_username(), last_name='')
    return DisplayName(first_name=user.first_name, last_name=user.last_name)


class NotificationSink:
    """Interface for notification delivery channels."""

    def notify(self, recipient_id, kind: str, payload: dict) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    """Sink that only writes notifications to the log."""

    def notify(self, recipient_id, kind, payload):
        logger.info("Notify user %s [%s]: %s", recipient_id, kind, payload.get('body', ''))


class DatabaseNotificationSink(NotificationSink):
    """Sink that stores notifications as ``Notification`` rows."""

    def notify(self, recipient_id, kind, payload):
        from .models import Notification

        data = {k: v for k, v in payload.items() if k not in ('title', 'body')}
        Notification.objects.create(
            recipient_id=recipient_id,
            kind=kind,
            title=payload.get('title', ''),
            body=payload.get('body', ''),
            data=data,
        )
        logger.debug("Stored %s notification for user %s", kind, recipient_id)


def get_notification_sink() -> NotificationSink:
    """Instantiate the sink configured in SCHEDULING_NOTIFICATION_SINK."""
    path = getattr(
        settings,
        'SCHEDULING_NOTIFICATION_SINK',
        'scheduling.notifications.DatabaseNotificationSink',
    )
    return import_string(path)()


def deliver(sink: NotificationSink, recipient_id, kind: str, payload: dict) -> bool:
    """
    Send one notification, swallowing and logging any failure.

    Returns:
        True if the sink accepted the notification
    """
    try:
        sink.notify(recipient_id, kind, payload)
        return True
    except Exception:
        logger.exception(
            "Failed to send %s notification to user %s (session %s)",
            kind, recipient_id, payload.get('session_id'),
        )
        return False


def format_day(day) -> str:
    """Short date label, e.g. 'Mon, Jun 3'."""
    return f"{day.strftime('%a, %b')} {day.day}"


def _name_of(user_id) -> str:
    try:
        name = get_display_name(user_id)
    except Exception:
        logger.exception("Failed to look up display name of user %s", user_id)
        name = None
    return name.full if name else 'Someone'


def notify_session_booked(sink, session) -> bool:
    """Tell the coach a client booked a session."""
    client_name = _name_of(session.client_id)
    day = format_day(session.scheduled_date)
    return deliver(sink, session.coach_id, types.SESSION_BOOKED, {
        'title': 'New session booked',
        'body': f"{client_name} booked a session on {day} at {session.start_time}",
        'session_id': session.pk,
        'date': day,
        'time': session.start_time,
    })


def notify_session_confirmed(sink, session) -> bool:
    """Tell the client the coach confirmed the session."""
    coach_name = _name_of(session.coach_id)
    day = format_day(session.scheduled_date)
    return deliver(sink, session.client_id, types.SESSION_CONFIRMED, {
        'title': 'Session confirmed',
        'body': f"{coach_name} confirmed your session on {day} at {session.start_time}",
        'session_id': session.pk,
        'date': day,
        'time': session.start_time,
    })


def notify_session_canceled(sink, session, canceled_by: str) -> bool:
    """Tell the other party that a session was canceled."""
    if canceled_by == types.COACH:
        actor_id, recipient_id = session.coach_id, session.client_id
    else:
        actor_id, recipient_id = session.client_id, session.coach_id
    day = format_day(session.scheduled_date)
    body = f"{_name_of(actor_id)} canceled the session on {day} at {session.start_time}"
    if session.cancel_reason:
        body = f"{body}: {session.cancel_reason}"
    return deliver(sink, recipient_id, types.SESSION_CANCELED, {
        'title': 'Session canceled',
        'body': body,
        'session_id': session.pk,
        'date': day,
        'time': session.start_time,
        'canceled_by': canceled_by,
        'reason': session.cancel_reason,
    })


def notify_session_reminder(sink, recipient_id, other_party_id, session, minutes: int) -> bool:
    other_name = _name_of(other_party_id)
    return deliver(sink, recipient_id, types.SESSION_REMINDER, {
        'title': f"Session in {minutes} minutes",
        'body': f"Your session with {other_name} starts in {minutes} minutes",
        'session_id': session.pk,
        'minutes': minutes,
    })


def notify_session_starting(sink, recipient_id, other_party_id, session) -> bool:
    other_name = _name_of(other_party_id)
    payload = {
        'title': 'Session starting',
        'body': f"Your session with {other_name} is starting now",
        'session_id': session.pk,
    }
    if session.meeting_link:
        payload['meeting_link'] = session.meeting_link
    return deliver(sink, recipient_id, types.SESSION_STARTING, payload)
