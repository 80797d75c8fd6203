"""
Management command to send upcoming-session reminders.

This command should be run every 5 minutes (e.g. cron ``*/5 * * * *``).
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from scheduling import reminders


def parse_now(value):
    """Parse the --now option into an aware datetime (default: current time)."""
    if not value:
        return timezone.now()
    parsed = parse_datetime(value)
    if parsed is None:
        raise CommandError(f"Invalid --now value: {value}")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


class Command(BaseCommand):
    help = 'Send 60-minute, 30-minute and starting-now session reminders'

    def add_arguments(self, parser):
        parser.add_argument(
            '--now',
            help='ISO datetime to treat as the current time (default: now)'
        )

    def handle(self, *args, **options):
        now = parse_now(options.get('now'))
        result = reminders.run_reminder_sweep(now)

        if result.skipped:
            self.stdout.write(self.style.WARNING('Another reminder sweep is running; skipped'))
            return

        self.stdout.write(
            self.style.SUCCESS(
                f'Sent {result.sent} reminder(s), {result.failed} failed, '
                f'{result.transitioned} session(s) started'
            )
        )
