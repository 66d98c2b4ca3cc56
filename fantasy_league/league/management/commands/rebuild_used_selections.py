"""
Management command to rebuild usage cycles from selection history.

Finalised selections are replayed in round order, which also clears any
duplicate-cycle corruption.

Usage:
    python manage.py rebuild_used_selections --league ABCD1234
    python manage.py rebuild_used_selections --league ABCD1234 --user alice
"""

from django.core.management.base import BaseCommand, CommandError

from league.models import League
from league.processing.cycles import rebuild_used_selections


class Command(BaseCommand):
    help = 'Rebuild usage cycles of a league from its finalised selections'

    def add_arguments(self, parser):
        parser.add_argument('--league', required=True, help='League code')
        parser.add_argument('--user', help='Only this username')

    def handle(self, *args, **options):
        league = League.objects.select_related('season').filter(code=options['league'].upper()).first()
        if league is None:
            raise CommandError(f"League {options['league']} not found")

        members = league.members.order_by('username')
        if options.get('user'):
            members = members.filter(username=options['user'])

        for member in members:
            state = rebuild_used_selections(member, league)
            self.stdout.write(
                f'  ✓ {member.username}: {len(state.driver_cycles)} driver cycle(s), '
                f'{len(state.team_cycles)} team cycle(s)'
            )

        self.stdout.write(self.style.SUCCESS(f'✓ Rebuilt usage cycles in {league.name}'))
