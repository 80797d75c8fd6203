"""Tests for scheduling/overlap.py."""

from datetime import date, datetime, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings
from django.utils import timezone

from scheduling.overlap import combine, day_of_week, find_conflicts, parse_hhmm, times_overlap
from scheduling.types import DaySlot


class TimesOverlapTests(SimpleTestCase):
    """Test the half-open interval overlap rule."""

    INTERVALS = [
        ('09:00', '10:00'),
        ('09:30', '10:30'),
        ('10:00', '11:00'),
        ('08:00', '12:00'),
        ('09:15', '09:45'),
        ('13:00', '14:00'),
    ]

    def test_overlap_is_symmetric(self):
        """Test overlap(a, b) == overlap(b, a) for every pair."""
        for a in self.INTERVALS:
            for b in self.INTERVALS:
                with self.subTest(a=a, b=b):
                    self.assertEqual(times_overlap(*a, *b), times_overlap(*b, *a))

    def test_disjoint_intervals_never_overlap(self):
        """Test that a.end <= b.start or b.end <= a.start means no overlap."""
        for a in self.INTERVALS:
            for b in self.INTERVALS:
                if a[1] <= b[0] or b[1] <= a[0]:
                    with self.subTest(a=a, b=b):
                        self.assertFalse(times_overlap(*a, *b))

    def test_adjacent_intervals(self):
        """Test that end1 == start2 is not an overlap."""
        self.assertFalse(times_overlap('09:00', '10:00', '10:00', '11:00'))

    def test_identical_and_contained(self):
        self.assertTrue(times_overlap('09:00', '10:00', '09:00', '10:00'))
        self.assertTrue(times_overlap('08:00', '12:00', '09:15', '09:45'))

    def test_partial_overlap(self):
        self.assertTrue(times_overlap('09:00', '10:00', '09:30', '10:30'))

    def test_find_conflicts(self):
        """Test filtering the slots that overlap a candidate."""
        slots = [
            DaySlot(slot_id=1, start_time='08:00', end_time='09:00', duration=60, medium='online'),
            DaySlot(slot_id=2, start_time='09:30', end_time='10:30', duration=60, medium='online'),
            DaySlot(slot_id=3, start_time='10:00', end_time='11:00', duration=60, medium='online'),
        ]

        conflicts = find_conflicts('09:00', '10:00', slots)

        self.assertEqual([slot.slot_id for slot in conflicts], [2])


class TimeHelpersTests(SimpleTestCase):
    """Test time parsing and day-of-week helpers."""

    def test_day_of_week_starts_on_sunday(self):
        self.assertEqual(day_of_week(date(2024, 6, 2)), 0)  # Sunday
        self.assertEqual(day_of_week(date(2024, 6, 3)), 1)  # Monday
        self.assertEqual(day_of_week(date(2024, 6, 8)), 6)  # Saturday

    def test_parse_hhmm(self):
        parsed = parse_hhmm('07:05')
        self.assertEqual((parsed.hour, parsed.minute), (7, 5))

    @override_settings(TIME_ZONE='Europe/Madrid')
    def test_combine_uses_wall_clock_timezone(self):
        """Test that the start instant is built in the configured zone."""
        start = combine(date(2024, 6, 3), '09:00')

        self.assertTrue(timezone.is_aware(start))
        self.assertEqual(
            start.astimezone(dt_timezone.utc).replace(tzinfo=None),
            datetime(2024, 6, 3, 7, 0),
        )
