"""
Management command to rebuild league leaderboards.

Usage:
    python manage.py rebuild_standings --year 2025
    python manage.py rebuild_standings --league ABCD1234
"""

from django.core.management.base import BaseCommand

from league.models import League
from league.processing.standings import update_standings


class Command(BaseCommand):
    help = 'Rebuild leaderboards from the stored selections'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, help='Only leagues of this season')
        parser.add_argument('--league', help='Only the league with this code')

    def handle(self, *args, **options):
        leagues = League.objects.select_related('season').order_by('pk')
        if options.get('year'):
            leagues = leagues.filter(season__year=options['year'])
        if options.get('league'):
            leagues = leagues.filter(code=options['league'].upper())

        rebuilt = 0
        for league in leagues:
            try:
                leaderboard = update_standings(league)
            except Exception as e:
                self.stdout.write(self.style.ERROR(f'✗ {league.name}: {e}'))
                raise
            rebuilt += 1
            leader = leaderboard.driver_standings[0] if leaderboard.driver_standings else None
            leader_text = f" (driver leader: {leader['username']}, {leader['total_points']} pts)" if leader else ''
            self.stdout.write(f'  ✓ {league.name}{leader_text}')

        self.stdout.write(self.style.SUCCESS(f'✓ Rebuilt {rebuilt} leaderboard(s)'))
