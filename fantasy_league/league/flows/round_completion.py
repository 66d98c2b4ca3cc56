"""
Prefect flow that scores one round on demand.

The completion cascade normally runs from the `round_completed` signal;
this flow is the operator's way to re-run it (late results, manual
corrections) and report the outcome to Slack.
"""

from typing import Dict, Optional

from prefect import flow, task, get_run_logger

from config.notifications import send_round_completion_notification
from league.processing.completion import on_round_completed


@task(name="Find Race")
def find_race(year: int, round_number: int) -> Optional[int]:
    from league.models import Race

    logger = get_run_logger()

    race = Race.objects.filter(season__year=year, round_number=round_number).first()
    if race is None:
        logger.error(f"Race {year} round {round_number} not found")
        return None
    return race.pk


@task(name="Score Round")
def score_round(race_id: int) -> Dict:
    """Run the completion cascade for one race"""
    from league.models import Race

    logger = get_run_logger()

    race = Race.objects.get(pk=race_id)
    summary = on_round_completed(race)

    if summary['status'] == 'aborted':
        logger.warning(f"Round {race.round_number} aborted: {summary['reason']}")
    else:
        logger.info(
            f"Round {race.round_number}: {summary['selections_updated']} updated, "
            f"{summary['errors']} error(s)"
        )
    return summary


@flow(name="Round Completion", log_prints=True)
def round_completion_flow(year: int, round_number: int, notify: bool = True) -> Dict:
    """
    Score a completed round across every active league of the season.

    Args:
        year: Season year
        round_number: Round to score
        notify: Post the summary to Slack

    Returns:
        dict: completion summary
    """
    logger = get_run_logger()

    logger.info(f"{'='*60}")
    logger.info(f"Round completion for {year} round {round_number}")
    logger.info(f"{'='*60}")

    race_id = find_race(year, round_number)
    if race_id is None:
        summary = {
            'status': 'aborted',
            'season': year,
            'round': round_number,
            'reason': 'race not found',
        }
    else:
        summary = score_round(race_id)

    if notify:
        send_round_completion_notification(summary)

    return summary
