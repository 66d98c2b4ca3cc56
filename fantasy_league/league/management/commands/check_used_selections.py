"""
Management command to check usage-cycle integrity.

This command helps identify:
- Entities recorded twice in the same cycle
- Cycles larger than the season's driver/team population
- Full cycles left as the current cycle (no fresh cycle opened)
- The entity that closed a cycle leaking into the next one

Usage:
    python manage.py check_used_selections
    python manage.py check_used_selections --year 2025 --verbose
"""

from django.core.management.base import BaseCommand

from league.models import UsedSelection
from league.processing.cycles import DRIVER_TRACK, TEAM_TRACK, find_cycle_anomalies, population_for


def get_cycle_anomalies_report(year=None) -> dict:
    """Anomalies grouped by (league, user)"""
    states = UsedSelection.objects.select_related('user', 'league', 'league__season').order_by('league_id', 'user__username')
    if year:
        states = states.filter(league__season__year=year)

    sizes = {}
    report = {'checked': 0, 'issues': []}

    for state in states:
        season = state.league.season
        if season.pk not in sizes:
            sizes[season.pk] = (
                len(population_for(season, DRIVER_TRACK)),
                len(population_for(season, TEAM_TRACK)),
            )

        report['checked'] += 1
        anomalies = find_cycle_anomalies(state, *sizes[season.pk])
        if anomalies:
            report['issues'].append({
                'league': state.league.name,
                'league_code': state.league.code,
                'username': state.user.username,
                'anomalies': anomalies,
            })

    return report


class Command(BaseCommand):
    help = 'Check usage cycles for duplicates, oversize cycles and leaks'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, help='Only leagues of this season')
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Show every anomaly'
        )

    def handle(self, *args, **options):
        verbose = options.get('verbose', False)

        self.stdout.write(self.style.SUCCESS('\n' + '='*70))
        self.stdout.write(self.style.SUCCESS('Usage Cycle Integrity Report'))
        self.stdout.write(self.style.SUCCESS('='*70 + '\n'))

        report = get_cycle_anomalies_report(options.get('year'))
        self.stdout.write(f"Usage records checked: {report['checked']}\n")

        if not report['issues']:
            self.stdout.write(self.style.SUCCESS('✓ No cycle anomalies detected\n'))
            return

        for issue in report['issues']:
            self.stdout.write(self.style.WARNING(
                f"{issue['username']} in {issue['league']} ({issue['league_code']}): "
                f"{len(issue['anomalies'])} anomaly(ies)"
            ))
            if verbose:
                for anomaly in issue['anomalies']:
                    entities = ', '.join(anomaly['entities']) or '-'
                    self.stdout.write(
                        f"  • {anomaly['track']} cycle {anomaly['cycle']}: {anomaly['type']} ({entities})"
                    )

        self.stdout.write(
            self.style.WARNING(
                "\nℹ  Rebuild the affected cycles from selection history:\n"
                "   python manage.py rebuild_used_selections --league <code> [--user <username>]\n"
            )
        )
