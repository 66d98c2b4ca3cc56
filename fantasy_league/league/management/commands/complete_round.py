"""
Management command to run the completion cascade for one round.

Usage:
    python manage.py complete_round --year 2025 --round 6
    python manage.py complete_round --year 2025 --round 6 --notify
"""

from django.core.management.base import BaseCommand, CommandError

from config.notifications import send_round_completion_notification
from league.models import Race
from league.processing.completion import on_round_completed


class Command(BaseCommand):
    help = 'Score a completed round for every active league and rebuild standings'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, required=True, help='Season year')
        parser.add_argument('--round', type=int, required=True, dest='round_number', help='Round number')
        parser.add_argument(
            '--notify',
            action='store_true',
            help='Post the summary to Slack'
        )

    def handle(self, *args, **options):
        year = options['year']
        round_number = options['round_number']

        race = Race.objects.filter(season__year=year, round_number=round_number).first()
        if race is None:
            raise CommandError(f'Race {year} round {round_number} not found')

        self.stdout.write(f'Scoring {race}...')
        summary = on_round_completed(race)

        if summary['status'] == 'aborted':
            self.stdout.write(self.style.ERROR(f"✗ Aborted: {summary['reason']}"))
        else:
            self.stdout.write(self.style.SUCCESS(
                f"✓ {summary['leagues_processed']} league(s): "
                f"{summary['selections_updated']} updated, "
                f"{summary['selections_unchanged']} unchanged, "
                f"{summary['selections_skipped']} skipped"
            ))
            if summary['errors']:
                self.stdout.write(self.style.ERROR(f"✗ {summary['errors']} error(s), see the log"))

        if options.get('notify'):
            send_round_completion_notification(summary)
