"""
Management command to mark yesterday's unfinished sessions as no-show.

This command should be run daily at midnight (e.g. cron ``0 0 * * *``).
"""

from django.core.management.base import BaseCommand

from scheduling import reminders
from scheduling.management.commands.send_session_reminders import parse_now


class Command(BaseCommand):
    help = 'Mark sessions from the previous day that never finished as no-show'

    def add_arguments(self, parser):
        parser.add_argument(
            '--now',
            help='ISO datetime to treat as the current time (default: now)'
        )

    def handle(self, *args, **options):
        now = parse_now(options.get('now'))
        result = reminders.run_no_show_sweep(now)

        if result.skipped:
            self.stdout.write(self.style.WARNING('Another no-show sweep is running; skipped'))
            return

        self.stdout.write(
            self.style.SUCCESS(f'Marked {result.transitioned} session(s) as no-show')
        )
