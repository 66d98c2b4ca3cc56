"""
Deadline sweep: once a round locks, members without complete picks get
the first two available drivers and the first available team of their
current cycles.

A selection that already holds complete picks is never touched, so the
sweep can run as often as the scheduler likes.
"""

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from . import cycles
from .selections import initialize_race_selections

logger = logging.getLogger(__name__)

OUTCOME_ASSIGNED = 'assigned'
OUTCOME_UNCHANGED = 'unchanged'
OUTCOME_SKIPPED = 'skipped'

AUTO_ASSIGN_NOTE = "Auto-assigned after the selection deadline"


def auto_assign_selection(league, member, race, now=None):
    """
    Fill one member's selection for `race`.

    Returns:
        (outcome, detail) where detail describes the picks when assigned
    """
    from league.models import RaceSelection

    now = now or timezone.now()

    with transaction.atomic():
        selection, _ = RaceSelection.objects.select_for_update().get_or_create(
            user=member,
            league=league,
            round=race.round_number,
            defaults={'race': race},
        )
        if selection.is_complete:
            return OUTCOME_UNCHANGED, None

        state, trackers = cycles.load_trackers(member, league, for_update=True)
        drivers = trackers[cycles.DRIVER_TRACK].available_entities()
        teams = trackers[cycles.TEAM_TRACK].available_entities()

        if len(drivers) < 2 or not teams:
            logger.warning(
                f"Cannot auto-assign {member} in {league.name} for round {race.round_number}: "
                f"{len(drivers)} driver(s) and {len(teams)} team(s) available"
            )
            return OUTCOME_SKIPPED, None

        main_driver, reserve_driver = drivers[0], drivers[1]
        team = teams[0]

        selection.race = race
        selection.main_driver = main_driver
        selection.reserve_driver = reserve_driver
        selection.team = team
        selection.status = RaceSelection.STATUS_AUTO_ASSIGNED
        selection.assigned_at = now
        selection.notes = AUTO_ASSIGN_NOTE
        selection.save()

        trackers[cycles.DRIVER_TRACK].record_round(race.round_number, [main_driver, reserve_driver])
        trackers[cycles.TEAM_TRACK].record_round(race.round_number, [team])
        for track, tracker in trackers.items():
            cycles.store_tracker(state, track, tracker)
        state.save()

    logger.info(
        f"Auto-assigned {member} in {league.name} for round {race.round_number}: "
        f"{main_driver} / {reserve_driver} / {team}"
    )
    return OUTCOME_ASSIGNED, {
        'username': member.username,
        'league': league.name,
        'round': race.round_number,
        'main_driver': main_driver,
        'reserve_driver': reserve_driver,
        'team': team,
    }


def auto_assign_for_race(race, now=None) -> dict:
    """Fill missing picks of every active league for a locked race"""
    from league.models import League

    now = now or timezone.now()
    summary = {
        'season': race.season.year,
        'round': race.round_number,
        'assigned': 0,
        'unchanged': 0,
        'skipped': 0,
        'errors': 0,
        'results': [],
    }

    if not race.is_locked(now):
        logger.info(f"Round {race.round_number} is not locked yet; nothing to auto-assign")
        return summary

    leagues = League.objects.filter(season=race.season, season_status=League.STATUS_ACTIVE).order_by('pk')
    for league in leagues:
        try:
            initialize_race_selections(league, race)
        except Exception:
            logger.exception(f"Could not seed selections of {league.name} for round {race.round_number}")
            summary['errors'] += 1
            continue

        for member in league.members.order_by('username'):
            try:
                outcome, detail = auto_assign_selection(league, member, race, now)
            except Exception:
                logger.exception(f"Auto-assignment failed for {member} in {league.name}")
                summary['errors'] += 1
                continue
            summary[outcome] += 1
            if detail:
                summary['results'].append(detail)

    return summary


def pending_races(now=None, year: Optional[int] = None):
    """Locked races of active seasons that are not completed or cancelled, by round"""
    from league.models import Race

    now = now or timezone.now()
    races = (
        Race.objects.filter(season__is_active=True)
        .exclude(status__in=[Race.STATUS_COMPLETED, Race.STATUS_CANCELLED])
        .select_related('season')
        .prefetch_related('sessions')
        .order_by('season__year', 'round_number')
    )
    if year is not None:
        races = races.filter(season__year=year)
    return [race for race in races if race.is_locked(now)]


def sweep_deadlines(now=None, year: Optional[int] = None) -> dict:
    """
    Auto-assign every race whose selection deadline has passed.

    Rounds are processed in ascending order since rotations depend on it.
    """
    now = now or timezone.now()
    summary = {'races': 0, 'assigned': 0, 'unchanged': 0, 'skipped': 0, 'errors': 0, 'results': []}

    for race in pending_races(now, year):
        race_summary = auto_assign_for_race(race, now)
        summary['races'] += 1
        for key in ('assigned', 'unchanged', 'skipped', 'errors'):
            summary[key] += race_summary[key]
        summary['results'].extend(race_summary['results'])

    if summary['races']:
        logger.info(
            f"Deadline sweep: {summary['assigned']} assigned, {summary['skipped']} skipped "
            f"across {summary['races']} race(s)"
        )
    return summary
