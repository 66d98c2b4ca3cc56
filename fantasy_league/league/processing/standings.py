"""
League leaderboards.

Standings are rebuilt from scratch out of every selection of a completed
round, never patched incrementally: a rebuild always reflects the
selections as they are, including edits made outside the engine.

Two tables per league:
- driver standings: main + reserve slot points
- constructor standings: team slot points

Both are sorted by total points (desc), ties broken by username.
"""

import logging
from typing import List

from django.db import transaction

logger = logging.getLogger(__name__)


def _slot_points(selection):
    """
    (driver points, team points) of a scored selection.

    A selection without a breakdown carries points entered by hand, which
    cannot be split between slots. Those points go to the driver table in
    full instead of being dropped, so a manual correction still shows up
    in the standings.
    """
    breakdown = selection.point_breakdown or {}
    if 'main_driver_points' not in breakdown:
        return selection.points, 0
    driver_points = breakdown.get('main_driver_points', 0) + breakdown.get('reserve_driver_points', 0)
    return driver_points, breakdown.get('team_points', 0)


def _sorted(entries: List[dict]) -> List[dict]:
    entries.sort(key=lambda entry: (-entry['total_points'], entry['username']))
    for position, entry in enumerate(entries, start=1):
        entry['position'] = position
    return entries


def compute_standings(league):
    """(driver_standings, constructor_standings) for a league, unsaved"""
    from league.models import Race, RaceSelection

    completed = {
        race.round_number: race
        for race in Race.objects.filter(season=league.season, status=Race.STATUS_COMPLETED)
    }

    drivers, constructors = {}, {}
    for member in league.members.order_by('username'):
        drivers[member.pk] = {'user_id': member.pk, 'username': member.username, 'total_points': 0, 'race_results': []}
        constructors[member.pk] = {'user_id': member.pk, 'username': member.username, 'total_points': 0, 'race_results': []}

    selections = (
        RaceSelection.objects.filter(league=league, round__in=list(completed))
        .select_related('user')
        .order_by('round')
    )

    for selection in selections:
        if selection.user_id not in drivers:
            # Former member: their picks no longer count
            continue

        race = completed[selection.round]
        driver_points, team_points = _slot_points(selection)

        driver_entry = drivers[selection.user_id]
        driver_entry['total_points'] += driver_points
        driver_entry['race_results'].append({
            'round': selection.round,
            'race_name': race.name,
            'main_driver': selection.main_driver,
            'reserve_driver': selection.reserve_driver,
            'points': driver_points,
        })

        constructor_entry = constructors[selection.user_id]
        constructor_entry['total_points'] += team_points
        constructor_entry['race_results'].append({
            'round': selection.round,
            'race_name': race.name,
            'team': selection.team,
            'points': team_points,
        })

    return _sorted(list(drivers.values())), _sorted(list(constructors.values()))


def update_standings(league):
    """Rebuild and persist the leaderboard of `league`"""
    from league.models import LeagueLeaderboard

    driver_standings, constructor_standings = compute_standings(league)

    with transaction.atomic():
        leaderboard, _ = LeagueLeaderboard.objects.select_for_update().get_or_create(
            league=league,
            season=league.season,
        )
        leaderboard.driver_standings = driver_standings
        leaderboard.constructor_standings = constructor_standings
        leaderboard.save()

    logger.info(f"Standings rebuilt for {league.name}: {len(driver_standings)} participant(s)")
    return leaderboard


def get_standings(league, season=None):
    """
    The stored leaderboard; built on first access.
    """
    from league.models import LeagueLeaderboard

    season = season or league.season
    leaderboard = LeagueLeaderboard.objects.filter(league=league, season=season).first()
    if leaderboard is None and season == league.season:
        leaderboard = update_standings(league)
    return leaderboard


def get_user_race_breakdown(league, user) -> List[dict]:
    """Round-by-round points of one member, completed rounds only"""
    from league.models import Race, RaceSelection

    completed_rounds = Race.objects.filter(
        season=league.season, status=Race.STATUS_COMPLETED
    ).values_list('round_number', flat=True)

    breakdown = []
    selections = RaceSelection.objects.filter(
        league=league, user=user, round__in=list(completed_rounds)
    ).order_by('round')
    for selection in selections:
        driver_points, team_points = _slot_points(selection)
        breakdown.append({
            'round': selection.round,
            'main_driver': selection.main_driver,
            'reserve_driver': selection.reserve_driver,
            'team': selection.team,
            'status': selection.status,
            'driver_points': driver_points,
            'team_points': team_points,
            'points': selection.points,
            'point_breakdown': selection.point_breakdown,
        })
    return breakdown
