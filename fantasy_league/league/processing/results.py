"""
Results ingestion.

The feed collaborator hands over already-parsed rows; this module turns
them into DriverResult/TeamResult rows for one race. Positions may be a
number or a status token ("DNF", "DNS", "DSQ", "DQ"). Rows without points
get them from the rules' points tables.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from config.rules import FANTASY_LEAGUE_RULES

logger = logging.getLogger(__name__)


def finish_points(position: Optional[int], sprint: bool = False) -> int:
    """Points for a classified finish (0 outside the points)"""
    if not position:
        return 0
    table_key = 'sprint_race' if sprint else 'grand_prix'
    return FANTASY_LEAGUE_RULES['scoring'][table_key]['finish_points'].get(int(position), 0)


def parse_position(value) -> Tuple[Optional[int], dict]:
    """
    Split a position cell into (position, status flags).

    >>> parse_position('3')
    (3, {})
    >>> parse_position('dns')
    (None, {'did_not_start': True})
    """
    if value is None or value == '':
        return None, {}
    if isinstance(value, int):
        return value, {}

    token = str(value).strip().lower()
    flag = FANTASY_LEAGUE_RULES['scoring']['status_tokens'].get(token)
    if flag:
        return None, {flag: True}
    try:
        return int(float(token)), {}
    except ValueError:
        logger.warning(f"Unrecognised position '{value}', treating as not classified")
        return None, {}


def build_driver_results(race, rows: Iterable[dict], session_type: str):
    """Unsaved DriverResult objects for one session"""
    from league.models import DriverResult

    sprint = session_type == DriverResult.SESSION_SPRINT
    results = []
    seen = set()

    for row in rows:
        name = (row.get('driver_name') or row.get('driver') or '').strip()
        if not name:
            logger.warning(f"Skipping result row without a driver name: {row}")
            continue
        if name in seen:
            logger.warning(f"Duplicate {session_type} row for {name} in round {race.round_number}, keeping the first")
            continue
        seen.add(name)

        position, flags = parse_position(row.get('position'))
        for flag in ('did_not_finish', 'did_not_start', 'disqualified'):
            if row.get(flag):
                flags[flag] = True

        points = row.get('points')
        if points is None or points == '':
            points = 0 if flags else finish_points(position, sprint=sprint)

        results.append(DriverResult(
            race=race,
            session_type=session_type,
            driver_name=name,
            team_name=(row.get('team_name') or row.get('team') or '').strip(),
            car_number=str(row.get('car_number') or ''),
            position=position,
            points=int(points),
            **flags,
        ))
    return results


def aggregate_team_results(race, race_results, sprint_results):
    """
    Team aggregate: race points + sprint points per team, positioned by
    total (ties keep first appearance order).
    """
    from league.models import TeamResult

    race_points = defaultdict(int)
    sprint_points = defaultdict(int)
    order = []

    for bucket, results in ((race_points, race_results), (sprint_points, sprint_results)):
        for result in results:
            if not result.team_name:
                continue
            if result.team_name not in order:
                order.append(result.team_name)
            bucket[result.team_name] += result.points

    ranked = sorted(
        order,
        key=lambda team: (-(race_points[team] + sprint_points[team]), order.index(team)),
    )
    return [
        TeamResult(
            race=race,
            team_name=team,
            position=position,
            race_points=race_points[team],
            sprint_points=sprint_points[team],
            total_points=race_points[team] + sprint_points[team],
        )
        for position, team in enumerate(ranked, start=1)
    ]


def record_results(race, race_rows: Iterable[dict], sprint_rows: Optional[Iterable[dict]] = None) -> dict:
    """
    Replace the results of `race` with the given feed rows.

    When the race is already completed the round is handed to the
    completion receivers again once the transaction commits, so points
    pick up late or corrected results.
    """
    from league.models import DriverResult, TeamResult

    race_results = build_driver_results(race, race_rows, DriverResult.SESSION_RACE)
    sprint_results = build_driver_results(race, sprint_rows or [], DriverResult.SESSION_SPRINT)
    team_results = aggregate_team_results(race, race_results, sprint_results)

    if sprint_results and not race.is_sprint_weekend:
        logger.warning(f"Round {race.round_number} received sprint results but is not a sprint weekend")

    with transaction.atomic():
        DriverResult.objects.filter(race=race).delete()
        TeamResult.objects.filter(race=race).delete()
        DriverResult.objects.bulk_create(race_results + sprint_results)
        TeamResult.objects.bulk_create(team_results)

        was_completed = race.status == race.STATUS_COMPLETED
        race.results_updated_at = timezone.now()
        race.save(update_fields=['results_updated_at', 'updated_at'])

        if was_completed:
            race.announce_completion()

    logger.info(
        f"Recorded results for {race}: {len(race_results)} race, "
        f"{len(sprint_results)} sprint, {len(team_results)} team rows"
    )
    return {
        'race_rows': len(race_results),
        'sprint_rows': len(sprint_results),
        'team_rows': len(team_results),
        'status': race.status,
    }
