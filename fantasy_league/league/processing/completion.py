"""
Round completion cascade.

When a race becomes completed (or its results are replaced afterwards),
every active league of the season is walked:

1. each member's selection for the round is scored, repointed to the
   current race row when it drifted, and persisted only when something
   changed or it still needs promoting
2. the final picks are recorded in the member's usage cycles
3. the league's standings are rebuilt, whether or not anything changed

Running the cascade twice on unchanged data leaves selections, cycles
and standings as they were. A failure for one member or one league is
logged and counted, the rest carries on. Missing results abort the whole
round before anything is written.
"""

import logging
import warnings

from django.db import transaction
from django.utils import timezone

from . import cycles
from .exceptions import DataIncompleteError, ReferenceDriftWarning, ValidationMismatchWarning
from .scoring import Modifier, RoundResults, calculate_race_points, find_mismatches, raw_points_lookup
from .standings import update_standings

logger = logging.getLogger(__name__)

OUTCOME_UPDATED = 'updated'
OUTCOME_UNCHANGED = 'unchanged'
OUTCOME_SKIPPED = 'skipped'


def _mirrored_points(card, race):
    """Base points of the member a mirror card copies, None when unresolvable"""
    from league.models import RaceSelection

    if card.target_user_id is None:
        return None
    target = RaceSelection.objects.filter(
        user_id=card.target_user_id,
        league_id=card.league_id,
        round=race.round_number,
    ).first()
    if target is None or not target.is_complete:
        logger.info(f"Mirror target of {card} has no complete selection")
        return None
    return calculate_race_points(target, RoundResults.from_race(race)).base_points


def default_modifier_provider(selection, race):
    """Cards the member played on this round"""
    from league.models import RoundModifier

    cards = RoundModifier.objects.filter(
        user_id=selection.user_id,
        league_id=selection.league_id,
        round=race.round_number,
    )
    return [
        Modifier(
            target=card.target,
            effect_type=card.effect_type,
            effect_value=card.effect_value,
            condition=card.condition,
            target_name=card.target_user.username if card.target_user_id else card.target_name,
            mirrored_points=_mirrored_points(card, race) if card.effect_type == RoundModifier.EFFECT_MIRROR else None,
        )
        for card in cards.select_related('target_user')
    ]


def no_modifiers(selection, race):
    return []


def load_results(race) -> RoundResults:
    """
    Results of `race`, or DataIncompleteError when either the driver rows
    or the team aggregate are missing.
    """
    results = RoundResults.from_race(race)
    if not results.race_rows:
        raise DataIncompleteError(f"Round {race.round_number} ({race.name}) has no driver results")
    if not results.team_rows:
        raise DataIncompleteError(f"Round {race.round_number} ({race.name}) has no team results")
    return results


def _log_warning(category, message):
    logger.warning(f"{category.__name__}: {message}")
    warnings.warn(message, category, stacklevel=2)


def heal_race_reference(selection, race) -> bool:
    """
    Repoint a selection whose race reference is stale. Returns True when
    the selection was repointed.
    """
    from league.models import RaceSelection

    if selection.race_id == race.pk:
        return False

    duplicates = RaceSelection.objects.filter(
        user_id=selection.user_id,
        league_id=selection.league_id,
        race=race,
    ).exclude(pk=selection.pk)
    for duplicate in duplicates:
        logger.info(f"Removing duplicate selection {duplicate.pk} (round {duplicate.round}) that points at {race}")
        duplicate.delete()

    stale = selection.race_id
    selection.race = race
    selection.save(update_fields=['race', 'updated_at'])
    _log_warning(
        ReferenceDriftWarning,
        f"Selection {selection.pk} ({selection.user_id}/{selection.league_id}/R{selection.round}) "
        f"pointed at race {stale}; repointed to {race.pk}",
    )
    return True


def process_member(league, member, race, results: RoundResults, modifier_provider=None) -> str:
    """Score one member's selection for `race`. Returns the outcome."""
    from league.models import PointsUpdateLog, RaceSelection

    modifier_provider = modifier_provider or default_modifier_provider

    with transaction.atomic():
        selection = (
            RaceSelection.objects.select_for_update()
            .filter(user=member, league=league, round=race.round_number)
            .first()
        )
        if selection is None:
            return OUTCOME_SKIPPED
        if not selection.is_complete:
            logger.info(f"{member} has an incomplete selection for round {race.round_number} in {league.name}")
            return OUTCOME_SKIPPED

        heal_race_reference(selection, race)

        score = calculate_race_points(selection, results, modifier_provider(selection, race))

        mismatches = find_mismatches(score.base_points, raw_points_lookup(selection, results))
        if mismatches:
            _log_warning(
                ValidationMismatchWarning,
                f"{league.name}/{member}/R{race.round_number}: " + '; '.join(mismatches),
            )

        points_changed = score.total != selection.points or score.breakdown != selection.point_breakdown
        needs_promotion = selection.status in (RaceSelection.STATUS_EMPTY, RaceSelection.STATUS_USER_SUBMITTED)
        if not (points_changed or needs_promotion):
            return OUTCOME_UNCHANGED

        rescore = selection.status == RaceSelection.STATUS_AUTO_ASSIGNED and bool(selection.point_breakdown)
        previous_points = selection.points

        selection.points = score.total
        selection.point_breakdown = score.breakdown
        selection.status = RaceSelection.STATUS_AUTO_ASSIGNED
        selection.assigned_at = selection.assigned_at or timezone.now()
        selection.save()

        PointsUpdateLog.objects.create(
            round=race.round_number,
            race_name=race.name,
            user=member,
            league=league,
            selection=selection,
            previous_points=previous_points,
            points=score.total,
            point_breakdown=score.breakdown,
            update_reason=PointsUpdateLog.REASON_RESCORE if rescore else PointsUpdateLog.REASON_INITIAL,
        )

        cycles.record_selection(
            member,
            league,
            race.round_number,
            selection.main_driver,
            selection.reserve_driver,
            selection.team,
        )

    logger.info(f"{league.name}/{member}/R{race.round_number}: {previous_points} -> {score.total} points")
    return OUTCOME_UPDATED


def process_league(league, race, results: RoundResults, modifier_provider=None) -> dict:
    counts = {OUTCOME_UPDATED: 0, OUTCOME_UNCHANGED: 0, OUTCOME_SKIPPED: 0, 'errors': 0}

    for member in league.members.order_by('username'):
        try:
            outcome = process_member(league, member, race, results, modifier_provider)
        except Exception:
            logger.exception(f"Failed to score {member} in {league.name} for round {race.round_number}")
            counts['errors'] += 1
            continue
        counts[outcome] += 1

    return counts


def on_round_completed(race, modifier_provider=None) -> dict:
    """
    Run the completion cascade for `race`.

    Args:
        race: a completed Race
        modifier_provider: callable(selection, race) -> cards to apply;
            defaults to the RoundModifier rows of the selection's member

    Returns:
        Summary dict (status 'complete' or 'aborted', counters, reason)
    """
    from league.models import League, Race

    race = Race.objects.select_related('season').get(pk=race.pk)
    summary = {
        'status': 'complete',
        'season': race.season.year,
        'round': race.round_number,
        'race': race.name,
        'leagues_processed': 0,
        'selections_updated': 0,
        'selections_unchanged': 0,
        'selections_skipped': 0,
        'errors': 0,
        'reason': '',
    }

    if race.status != Race.STATUS_COMPLETED:
        summary['status'] = 'aborted'
        summary['reason'] = f"race status is '{race.status}'"
        logger.warning(f"Round {race.round_number} is not completed ({race.status}); nothing to score")
        return summary

    try:
        results = load_results(race)
    except DataIncompleteError as e:
        logger.error(f"Aborting completion of round {race.round_number}: {e}")
        summary['status'] = 'aborted'
        summary['reason'] = str(e)
        return summary

    leagues = League.objects.filter(
        season=race.season,
        season_status=League.STATUS_ACTIVE,
    ).select_related('season').order_by('pk')

    for league in leagues:
        try:
            counts = process_league(league, race, results, modifier_provider)
            summary['selections_updated'] += counts[OUTCOME_UPDATED]
            summary['selections_unchanged'] += counts[OUTCOME_UNCHANGED]
            summary['selections_skipped'] += counts[OUTCOME_SKIPPED]
            summary['errors'] += counts['errors']
        except Exception:
            logger.exception(f"Failed to process league {league.name} for round {race.round_number}")
            summary['errors'] += 1

        try:
            update_standings(league)
        except Exception:
            logger.exception(f"Failed to rebuild standings for {league.name}")
            summary['errors'] += 1

        summary['leagues_processed'] += 1

    logger.info(
        f"Round {race.round_number} completion: {summary['selections_updated']} updated, "
        f"{summary['selections_unchanged']} unchanged, {summary['selections_skipped']} skipped, "
        f"{summary['errors']} error(s) across {summary['leagues_processed']} league(s)"
    )
    return summary


def handle_round_completed(sender, race, **kwargs):
    """`round_completed` receiver"""
    try:
        return on_round_completed(race)
    except Exception:
        logger.exception(f"Completion cascade crashed for race {race.pk}")
        return None
