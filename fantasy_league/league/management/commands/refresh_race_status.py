"""
Management command to recompute race statuses from the clock.

Races that become completed hand themselves to the completion cascade.

Usage:
    python manage.py refresh_race_status
    python manage.py refresh_race_status --year 2025
"""

from django.core.management.base import BaseCommand

from league.processing.lifecycle import refresh_race_statuses


class Command(BaseCommand):
    help = 'Recompute race statuses from their timing fields'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=int,
            help='Only refresh races of this season'
        )

    def handle(self, *args, **options):
        summary = refresh_race_statuses(year=options.get('year'))

        for transition in summary['transitions']:
            self.stdout.write(
                f"  {transition['season']} R{transition['round']}: "
                f"{transition['from']} -> {transition['to']}"
            )

        self.stdout.write(self.style.SUCCESS(
            f"✓ Checked {summary['checked']} race(s), {summary['changed']} changed"
        ))
