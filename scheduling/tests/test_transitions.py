"""Tests for the session state machine and session services."""

from datetime import date, datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from scheduling import services, types
from scheduling.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from scheduling.models import Notification, Session
from scheduling.transitions import can_transition, check_field_writes, check_transition
from scheduling.types import SessionFilters, SessionUpdateData


User = get_user_model()

NOW = datetime(2024, 6, 3, 12, 0, tzinfo=dt_timezone.utc)


class TransitionRulesTests(SimpleTestCase):
    """Test the transition table without the database."""

    def test_coach_moves_from_scheduled(self):
        for target in (types.CONFIRMED, types.COMPLETED, types.IN_PROGRESS, types.NO_SHOW, types.CANCELED):
            with self.subTest(target=target):
                self.assertTrue(can_transition(types.SCHEDULED, target, types.COACH))

    def test_client_may_only_cancel(self):
        for target in (types.CONFIRMED, types.COMPLETED, types.IN_PROGRESS, types.NO_SHOW):
            with self.subTest(target=target):
                with self.assertRaises(InvalidTransitionError):
                    check_transition(types.SCHEDULED, target, types.CLIENT)

        check_transition(types.SCHEDULED, types.CANCELED, types.CLIENT)
        check_transition(types.CONFIRMED, types.CANCELED, types.CLIENT)

    def test_terminal_states_are_final(self):
        for current in types.TERMINAL_STATUSES:
            for target in (types.SCHEDULED, types.CONFIRMED, types.IN_PROGRESS,
                           types.COMPLETED, types.CANCELED, types.NO_SHOW):
                for actor in (types.COACH, types.CLIENT, types.SYSTEM):
                    with self.subTest(current=current, target=target, actor=actor):
                        self.assertFalse(can_transition(current, target, actor))
                        with self.assertRaises(InvalidTransitionError):
                            check_transition(current, target, actor)

    def test_cannot_cancel_in_progress(self):
        with self.assertRaises(InvalidTransitionError):
            check_transition(types.IN_PROGRESS, types.CANCELED, types.COACH)

    def test_system_may_start_and_mark_no_show_only(self):
        self.assertTrue(can_transition(types.CONFIRMED, types.IN_PROGRESS, types.SYSTEM))
        self.assertTrue(can_transition(types.IN_PROGRESS, types.NO_SHOW, types.SYSTEM))
        self.assertFalse(can_transition(types.SCHEDULED, types.CONFIRMED, types.SYSTEM))
        self.assertFalse(can_transition(types.SCHEDULED, types.CANCELED, types.SYSTEM))

    def test_nothing_returns_to_scheduled(self):
        self.assertFalse(can_transition(types.CONFIRMED, types.SCHEDULED, types.COACH))

    def test_field_permissions(self):
        check_field_writes(['meeting_link', 'location', 'coach_notes', 'notes'], types.COACH)
        check_field_writes(['client_notes', 'notes'], types.CLIENT)

        with self.assertRaises(ForbiddenError):
            check_field_writes(['client_notes'], types.COACH)
        with self.assertRaises(ForbiddenError):
            check_field_writes(['meeting_link'], types.CLIENT)


class SessionServiceTests(TestCase):
    """Test session reads and mutations through the service layer."""

    def setUp(self):
        self.coach = User.objects.create_user(username='coach', first_name='Ana', last_name='Coach')
        self.client_user = User.objects.create_user(username='client', first_name='Ben', last_name='Client')
        self.outsider = User.objects.create_user(username='outsider')
        self.session = Session.objects.create(
            coach=self.coach,
            client=self.client_user,
            scheduled_date=date(2024, 6, 10),
            start_time='09:00',
            end_time='10:00',
        )

    def _update(self, actor, **fields):
        return services.update_session(self.session.id, actor.id, SessionUpdateData(**fields), now=NOW)

    def test_get_session_as_participant(self):
        self.assertEqual(services.get_session(self.session.id, self.client_user.id), self.session)
        self.assertEqual(services.get_session(self.session.id, self.coach.id), self.session)

    def test_get_session_as_outsider(self):
        with self.assertRaises(ForbiddenError):
            services.get_session(self.session.id, self.outsider.id)

    def test_get_missing_session(self):
        with self.assertRaises(NotFoundError):
            services.get_session(9999, self.coach.id)

    def test_coach_confirms_and_client_is_notified(self):
        session = self._update(self.coach, status=types.CONFIRMED)

        self.assertEqual(session.status, types.CONFIRMED)
        self.assertEqual(session.version, 2)
        notification = Notification.objects.get(recipient=self.client_user)
        self.assertEqual(notification.kind, types.SESSION_CONFIRMED)
        self.assertIn('Ana Coach', notification.body)

    def test_client_cannot_confirm(self):
        with self.assertRaises(InvalidTransitionError):
            self._update(self.client_user, status=types.CONFIRMED)

        self.session.refresh_from_db()
        self.assertEqual(self.session.status, types.SCHEDULED)

    def test_coach_completes(self):
        self._update(self.coach, status=types.IN_PROGRESS)
        session = self._update(self.coach, status=types.COMPLETED)

        self.assertEqual(session.status, types.COMPLETED)
        self.assertEqual(session.completed_at, NOW)

    def test_coach_marks_no_show(self):
        session = self._update(self.coach, status=types.NO_SHOW)

        self.assertEqual(session.status, types.NO_SHOW)

    def test_cancel_through_update(self):
        session = self._update(self.client_user, status=types.CANCELED, cancel_reason='Sick')

        self.assertEqual(session.canceled_by, types.CLIENT)
        self.assertEqual(session.cancel_reason, 'Sick')
        self.assertEqual(session.canceled_at, NOW)
        notification = Notification.objects.get(recipient=self.coach)
        self.assertEqual(notification.kind, types.SESSION_CANCELED)

    def test_cancel_reason_requires_cancel(self):
        with self.assertRaises(ValidationError):
            self._update(self.coach, cancel_reason='Because')

    def test_update_from_terminal_state(self):
        self._update(self.coach, status=types.COMPLETED)

        with self.assertRaises(InvalidTransitionError):
            self._update(self.coach, status=types.CONFIRMED)

    def test_same_status_rejected(self):
        self._update(self.coach, status=types.CONFIRMED)

        with self.assertRaises(InvalidTransitionError):
            self._update(self.coach, status=types.CONFIRMED)

    def test_field_writes_by_owner(self):
        self._update(self.coach, meeting_link='https://meet.example/abc', coach_notes='Focus on squats')
        session = self._update(self.client_user, client_notes='Great session', notes='Agenda')

        session.refresh_from_db()
        self.assertEqual(session.meeting_link, 'https://meet.example/abc')
        self.assertEqual(session.coach_notes, 'Focus on squats')
        self.assertEqual(session.client_notes, 'Great session')
        self.assertEqual(session.notes, 'Agenda')
        self.assertEqual(session.version, 3)

    def test_client_cannot_write_coach_fields(self):
        with self.assertRaises(ForbiddenError):
            self._update(self.client_user, location='Gym')

    def test_coach_cannot_write_client_notes(self):
        with self.assertRaises(ForbiddenError):
            self._update(self.coach, client_notes='Nice')

    def test_outsider_cannot_update(self):
        with self.assertRaises(ForbiddenError):
            self._update(self.outsider, notes='hi')

    def test_update_missing_session(self):
        with self.assertRaises(NotFoundError):
            services.update_session(9999, self.coach.id, SessionUpdateData(notes='x'))

    def test_coach_notes_after_completion(self):
        """Test that plain fields stay writable in terminal states."""
        self._update(self.coach, status=types.COMPLETED)
        session = self._update(self.coach, coach_notes='Good progress')

        self.assertEqual(session.coach_notes, 'Good progress')

    def test_stale_write_raises_conflict(self):
        """Test the version compare-and-set rejects a writer that lost a race."""
        stale = Session.objects.get(pk=self.session.id)
        self._update(self.coach, status=types.CONFIRMED)

        stale.status = types.CANCELED
        with self.assertRaises(ConflictError):
            services._save_versioned(stale, ['status'], NOW)

        self.session.refresh_from_db()
        self.assertEqual(self.session.status, types.CONFIRMED)


class CancelSessionTests(TestCase):
    """Test the dedicated cancel operation."""

    def setUp(self):
        self.coach = User.objects.create_user(username='coach')
        self.client_user = User.objects.create_user(username='client')
        self.session = Session.objects.create(
            coach=self.coach,
            client=self.client_user,
            scheduled_date=date(2024, 6, 10),
            start_time='09:00',
            end_time='10:00',
        )

    def test_coach_cancels(self):
        session = services.cancel_session(self.session.id, self.coach.id, 'Travelling', now=NOW)

        self.assertEqual(session.status, types.CANCELED)
        self.assertEqual(session.canceled_by, types.COACH)
        self.assertEqual(session.cancel_reason, 'Travelling')
        notification = Notification.objects.get(recipient=self.client_user)
        self.assertIn('Travelling', notification.body)

    def test_cancel_confirmed(self):
        services.update_session(self.session.id, self.coach.id, SessionUpdateData(status=types.CONFIRMED))

        session = services.cancel_session(self.session.id, self.client_user.id)

        self.assertEqual(session.canceled_by, types.CLIENT)

    def test_cancel_in_progress_rejected(self):
        services.transition_session(self.session.id, types.IN_PROGRESS)

        with self.assertRaises(InvalidTransitionError):
            services.cancel_session(self.session.id, self.client_user.id)

    def test_cancel_twice_rejected(self):
        services.cancel_session(self.session.id, self.client_user.id)

        with self.assertRaises(InvalidTransitionError):
            services.cancel_session(self.session.id, self.coach.id)

    def test_outsider_cannot_cancel(self):
        outsider = User.objects.create_user(username='outsider')

        with self.assertRaises(ForbiddenError):
            services.cancel_session(self.session.id, outsider.id)


class ListSessionsTests(TestCase):
    """Test listing with role, status, upcoming and date filters."""

    def setUp(self):
        self.coach = User.objects.create_user(username='coach')
        self.client_user = User.objects.create_user(username='client')
        self.other = User.objects.create_user(username='other')

        def make(coach, client, day, start, status=types.SCHEDULED):
            return Session.objects.create(
                coach=coach, client=client, scheduled_date=day,
                start_time=start, end_time=start[:3] + '30', status=status,
            )

        self.past = make(self.coach, self.client_user, date(2024, 5, 27), '09:00', types.COMPLETED)
        self.later = make(self.coach, self.client_user, date(2024, 6, 10), '11:00')
        self.sooner = make(self.coach, self.client_user, date(2024, 6, 10), '09:00', types.CONFIRMED)
        self.as_client = make(self.other, self.coach, date(2024, 6, 12), '09:00')
        self.unrelated = make(self.other, self.client_user, date(2024, 6, 12), '10:00')

    def _ids(self, sessions):
        return [s.id for s in sessions]

    def test_both_roles_ordered(self):
        sessions = services.list_sessions(self.coach.id)

        self.assertEqual(
            self._ids(sessions),
            [self.past.id, self.sooner.id, self.later.id, self.as_client.id]
        )

    def test_role_filter(self):
        self.assertEqual(
            self._ids(services.list_sessions(self.coach.id, SessionFilters(role=types.CLIENT))),
            [self.as_client.id]
        )

    def test_status_filter(self):
        sessions = services.list_sessions(self.coach.id, SessionFilters(status=types.COMPLETED))

        self.assertEqual(self._ids(sessions), [self.past.id])

    def test_upcoming_filter(self):
        sessions = services.list_sessions(
            self.coach.id, SessionFilters(role=types.COACH, upcoming=True), today=date(2024, 6, 3)
        )

        self.assertEqual(self._ids(sessions), [self.sooner.id, self.later.id])

    def test_date_filter(self):
        sessions = services.list_sessions(self.client_user.id, SessionFilters(on_date=date(2024, 6, 12)))

        self.assertEqual(self._ids(sessions), [self.unrelated.id])
