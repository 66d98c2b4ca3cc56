"""
Pick submission, eligibility and seeding of empty selections.
"""

import logging
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from . import cycles
from .exceptions import EligibilityError
from .normalization import is_blank, match_entity, normalize_name

logger = logging.getLogger(__name__)


def initialize_race_selections(league, race, users: Optional[Iterable] = None) -> int:
    """
    Make sure every member (or each of `users`) has a selection for `race`.
    Returns how many records were created.
    """
    from league.models import RaceSelection

    users = list(users) if users is not None else list(league.members.all())
    existing = set(
        RaceSelection.objects.filter(league=league, round=race.round_number)
        .values_list('user_id', flat=True)
    )
    missing = [
        RaceSelection(user=user, league=league, race=race, round=race.round_number)
        for user in users
        if user.pk not in existing
    ]
    RaceSelection.objects.bulk_create(missing, ignore_conflicts=True)
    return len(missing)


def initialize_league_selections(league, users: Optional[Iterable] = None) -> int:
    """Empty selections for every round of the league's season"""
    created = 0
    users = list(users) if users is not None else list(league.members.all())
    for race in league.season.races.all():
        created += initialize_race_selections(league, race, users=users)
    if created:
        logger.info(f"Created {created} empty selection(s) in {league.name}")
    return created


def get_eligible(user, league) -> Dict[str, List[str]]:
    """Drivers and teams `user` may still pick in `league` this cycle"""
    return cycles.get_available(user, league)


def _resolve(name, population, role):
    canonical = match_entity(name, population)
    if canonical is None:
        raise EligibilityError(
            EligibilityError.UNKNOWN_ENTITY,
            f"'{name}' is not a selectable {'team' if role == 'team' else 'driver'} this season",
            entity=name,
            role=role,
        )
    return canonical


def submit_picks(user, league, round_number: int, main_driver: str, reserve_driver: str, team: str, now=None):
    """
    Store a participant's own picks for a round.

    Raises:
        EligibilityError: the submission was rejected; `code` says why
    """
    from league.models import Race, RaceSelection

    clock_pinned = now is not None
    now = now or timezone.now()

    if not league.members.filter(pk=user.pk).exists():
        raise EligibilityError(
            EligibilityError.NOT_A_MEMBER,
            f"{user} is not a member of {league.name}",
        )

    race = Race.objects.filter(season=league.season, round_number=round_number).first()
    if race is None:
        raise EligibilityError(
            EligibilityError.UNKNOWN_ENTITY,
            f"Round {round_number} is not on the {league.season.year} calendar",
            entity=str(round_number),
            role='round',
        )

    if race.is_locked(now):
        raise EligibilityError(
            EligibilityError.ROUND_LOCKED,
            f"Picks for round {round_number} locked at the start of qualifying",
            role='round',
        )

    picks = {'main_driver': main_driver, 'reserve_driver': reserve_driver, 'team': team}
    for role, name in picks.items():
        if is_blank(name):
            raise EligibilityError(
                EligibilityError.INCOMPLETE_SELECTION,
                "A main driver, a reserve driver and a team are all required",
                role=role,
            )

    season = league.season
    driver_population = cycles.population_for(season, cycles.DRIVER_TRACK)
    team_population = cycles.population_for(season, cycles.TEAM_TRACK)

    main = _resolve(main_driver, driver_population, 'main_driver')
    reserve = _resolve(reserve_driver, driver_population, 'reserve_driver')
    constructor = _resolve(team, team_population, 'team')

    if normalize_name(main) == normalize_name(reserve):
        raise EligibilityError(
            EligibilityError.DUPLICATE_DRIVER,
            "The main and the reserve driver must be different",
            entity=main,
            role='reserve_driver',
        )

    with transaction.atomic():
        selection, _ = RaceSelection.objects.select_for_update().get_or_create(
            user=user,
            league=league,
            round=round_number,
            defaults={'race': race},
        )
        # The deadline sweep may have filled this round since the first check
        if not clock_pinned:
            now = timezone.now()
        if selection.status == RaceSelection.STATUS_AUTO_ASSIGNED or race.is_locked(now):
            raise EligibilityError(
                EligibilityError.ROUND_LOCKED,
                f"Picks for round {round_number} locked at the start of qualifying",
                role='round',
            )

        state = cycles.peek_state(user, league)
        trackers = {
            cycles.DRIVER_TRACK: cycles.tracker_from_state(state, cycles.DRIVER_TRACK, driver_population),
            cycles.TEAM_TRACK: cycles.tracker_from_state(state, cycles.TEAM_TRACK, team_population),
        }

        for role, name, track in (
            ('main_driver', main, cycles.DRIVER_TRACK),
            ('reserve_driver', reserve, cycles.DRIVER_TRACK),
            ('team', constructor, cycles.TEAM_TRACK),
        ):
            if not trackers[track].can_use(name):
                raise EligibilityError(
                    EligibilityError.ALREADY_USED,
                    f"{name} was already used in this rotation",
                    entity=name,
                    role=role,
                )

        selection.race = race
        selection.main_driver = main
        selection.reserve_driver = reserve
        selection.team = constructor
        selection.status = RaceSelection.STATUS_USER_SUBMITTED
        selection.assigned_at = now
        selection.save()

    logger.info(f"{user} submitted round {round_number} in {league.name}: {main} / {reserve} / {constructor}")
    return selection
