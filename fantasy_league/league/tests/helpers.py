"""
Shared fixtures for league tests.

Catalog drivers are named "Test Racer01" .. "Test RacerNN" so catalog
order (last name, first name) is Racer01, Racer02, ...
"""

from datetime import timedelta

from django.utils import timezone

from league.models import Driver, League, Race, Season, Team, User


def driver_name(n):
    return f"Test Racer{n:02d}"


def team_name(n):
    return f"Team {n:02d}"


def create_season(year=2025, drivers=20, teams=10):
    season = Season.objects.create(year=year, name=f'{year} Formula 1 Season')
    season.teams.set([
        Team.objects.get_or_create(name=team_name(n))[0]
        for n in range(1, teams + 1)
    ])
    season.drivers.set([
        Driver.objects.get_or_create(
            full_name=driver_name(n),
            defaults={'first_name': 'Test', 'last_name': f'Racer{n:02d}'},
        )[0]
        for n in range(1, drivers + 1)
    ])
    return season


def create_race(season, round_number, qualifying_offset=timedelta(days=2), sprint=False, **kwargs):
    """
    Race whose qualifying starts `qualifying_offset` from now and whose
    Grand Prix starts one day after qualifying.
    """
    qualifying_start = timezone.now() + qualifying_offset
    fields = {
        'name': f'Round {round_number} Grand Prix',
        'qualifying_start': qualifying_start,
        'race_start': qualifying_start + timedelta(days=1),
        'is_sprint_weekend': sprint,
    }
    if sprint:
        fields['sprint_qualifying_start'] = qualifying_start + timedelta(hours=20)
        fields['sprint_start'] = qualifying_start + timedelta(hours=22)
    fields.update(kwargs)
    return Race.objects.create(season=season, round_number=round_number, **fields)


def create_completed_race(season, round_number, **kwargs):
    race = create_race(season, round_number, qualifying_offset=-timedelta(days=3), **kwargs)
    assert race.status == Race.STATUS_COMPLETED
    return race


def create_locked_race(season, round_number, **kwargs):
    """Qualifying started an hour ago, Grand Prix still ahead"""
    return create_race(season, round_number, qualifying_offset=-timedelta(hours=1), **kwargs)


def create_user(username):
    return User.objects.create_user(username=username, password='password')


def create_league(season, owner, members=(), name='Test League'):
    league = League.objects.create(name=name, owner=owner, season=season)
    league.members.add(owner, *members)
    return league
