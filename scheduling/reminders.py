"""
Reminder Scheduler.

Background sweeps that run periodically:
- run_reminder_sweep: every 5 minutes, sends 60-minute, 30-minute and
  starting-now reminders and starts sessions that are about to begin
- run_no_show_sweep: daily at midnight, marks yesterday's unfinished
  sessions as no-show

Both are pure functions of ``now`` plus the database, so a host process
(cron via the management commands) or a test can pass any instant.

Each reminder flag is claimed with a conditional update before notifying,
so overlapping sweeps never send the same reminder twice. The flag stays set
when delivery fails: delivery is at most once and is not retried.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from datetime import timedelta
from typing import NamedTuple

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from . import notifications, services, types
from .exceptions import ConflictError, InvalidTransitionError
from .models import Session
from .types import SweepResult

logger = logging.getLogger(__name__)


class Reminder(NamedTuple):
    flag: str
    minutes: int
    window_start: int
    window_end: int


REMINDERS = (
    Reminder(flag='reminder_60_sent', minutes=60, window_start=55, window_end=65),
    Reminder(flag='reminder_30_sent', minutes=30, window_start=25, window_end=35),
)
STARTING_NOW = Reminder(flag='starting_now_sent', minutes=0, window_start=0, window_end=10)

LOCK_PREFIX = 'scheduling:sweep-lock:'


@contextmanager
def sweep_lock(name):
    """
    Hold a cache-based run lock for one sweep.

    Yields:
        True if the lock was acquired, False if another run holds it
    """
    key = f"{LOCK_PREFIX}{name}"
    token = uuid.uuid4().hex
    ttl = getattr(settings, 'SCHEDULING_SWEEP_LOCK_TTL', 600)
    acquired = cache.add(key, token, ttl)
    try:
        yield acquired
    finally:
        if acquired and cache.get(key) == token:
            cache.delete(key)


class _Deadline:
    """Soft timeout measured on the monotonic clock."""

    def __init__(self, seconds):
        self.expires = time.monotonic() + seconds

    def passed(self):
        return time.monotonic() > self.expires


def _soft_timeout():
    return _Deadline(getattr(settings, 'SCHEDULING_SWEEP_SOFT_TIMEOUT', 240))


def run_reminder_sweep(now, sink=None) -> SweepResult:
    """
    Send due reminders for today's active sessions.

    Args:
        now: aware datetime treated as the current instant
        sink: NotificationSink (default: configured sink)

    Returns:
        SweepResult with sent/failed notification counts and the number
        of sessions moved to in-progress
    """
    with sweep_lock('reminders') as acquired:
        if not acquired:
            logger.warning("Reminder sweep already running, skipping tick at %s", now)
            return SweepResult(skipped=True)

        sink = sink or notifications.get_notification_sink()
        deadline = _soft_timeout()
        result = SweepResult()

        for reminder in REMINDERS + (STARTING_NOW,):
            if not _sweep_threshold(reminder, now, sink, result, deadline):
                result.timed_out = True
                logger.warning("Reminder sweep hit its soft timeout at %s threshold", reminder.flag)
                break

        logger.info(
            "Reminder sweep at %s: %d sent, %d failed, %d started",
            now, result.sent, result.failed, result.transitioned,
        )
        return result


def _sweep_threshold(reminder, now, sink, result, deadline) -> bool:
    """Process one threshold. Returns False if the soft timeout passed."""
    today = timezone.localdate(now)
    window_start = now + timedelta(minutes=reminder.window_start)
    window_end = now + timedelta(minutes=reminder.window_end)

    candidates = Session.objects.active().on_date(today).awaiting(reminder.flag).ordered()

    for session in candidates:
        if deadline.passed():
            return False

        if not window_start <= session.starts_at <= window_end:
            continue

        try:
            # Claim the flag before sending; an overlapping sweep loses the claim and skips
            if not services.mark_reminder_sent(session.pk, reminder.flag, now=now):
                logger.debug("Session %s %s already claimed", session.pk, reminder.flag)
                continue
            _remind(session, reminder, sink, result)
            if reminder is STARTING_NOW and session.status in types.UPCOMING_STATUSES:
                services.transition_session(session.pk, types.IN_PROGRESS, now=now)
                result.transitioned += 1
        except (InvalidTransitionError, ConflictError) as exc:
            logger.info("Session %s not started by reminder sweep: %s", session.pk, exc)
        except Exception:
            result.failed += 1
            logger.exception("Failed to process %s for session %s", reminder.flag, session.pk)

    return True


def _remind(session, reminder, sink, result) -> None:
    """Notify client and coach; each delivery is attempted independently."""
    pairs = ((session.client_id, session.coach_id), (session.coach_id, session.client_id))
    for recipient_id, other_id in pairs:
        if reminder is STARTING_NOW:
            delivered = notifications.notify_session_starting(sink, recipient_id, other_id, session)
        else:
            delivered = notifications.notify_session_reminder(
                sink, recipient_id, other_id, session, reminder.minutes
            )
        if delivered:
            result.sent += 1
        else:
            result.failed += 1

    logger.info("Sent %s for session %s", reminder.flag, session.pk)


def run_no_show_sweep(now) -> SweepResult:
    """
    Mark sessions from the previous day that never finished as no-show.

    Args:
        now: aware datetime treated as the current instant

    Returns:
        SweepResult whose ``transitioned`` counts the sessions marked
    """
    with sweep_lock('no-show') as acquired:
        if not acquired:
            logger.warning("No-show sweep already running, skipping run at %s", now)
            return SweepResult(skipped=True)

        yesterday = timezone.localdate(now) - timedelta(days=1)
        deadline = _soft_timeout()
        result = SweepResult()

        for session_id in Session.objects.active().on_date(yesterday).values_list('pk', flat=True):
            if deadline.passed():
                result.timed_out = True
                logger.warning("No-show sweep hit its soft timeout")
                break
            try:
                services.transition_session(session_id, types.NO_SHOW, now=now)
                result.transitioned += 1
            except (InvalidTransitionError, ConflictError) as exc:
                logger.info("Session %s not marked no-show: %s", session_id, exc)
            except Exception:
                result.failed += 1
                logger.exception("Failed to mark session %s as no-show", session_id)

        if result.transitioned:
            logger.info("Marked %d sessions from %s as no-show", result.transitioned, yesterday)
        return result
