"""
Management command to run the deadline sweep once.

Usage:
    python manage.py sweep_deadlines
    python manage.py sweep_deadlines --year 2025 --notify
"""

from django.core.management.base import BaseCommand

from config.notifications import send_auto_assignment_notification
from league.processing.auto_assignment import sweep_deadlines


class Command(BaseCommand):
    help = 'Auto-assign missing picks for every round past its selection deadline'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=int,
            help='Only sweep races of this season'
        )
        parser.add_argument(
            '--notify',
            action='store_true',
            help='Post the assignments to Slack'
        )

    def handle(self, *args, **options):
        summary = sweep_deadlines(year=options.get('year'))

        for item in summary['results']:
            self.stdout.write(
                f"  • {item['username']} ({item['league']}, R{item['round']}): "
                f"{item['main_driver']} / {item['reserve_driver']} / {item['team']}"
            )

        self.stdout.write(self.style.SUCCESS(
            f"✓ {summary['races']} race(s): {summary['assigned']} assigned, "
            f"{summary['unchanged']} already complete, {summary['skipped']} skipped"
        ))
        if summary['errors']:
            self.stdout.write(self.style.ERROR(f"✗ {summary['errors']} error(s), see the log"))

        if options.get('notify'):
            send_auto_assignment_notification(summary)
