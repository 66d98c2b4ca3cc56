"""
Prefect flow for the time-driven part of a race weekend.

Meant to run on a short schedule (every few minutes). Each run:
1. Recomputes the status of every race that is not completed yet
   (a race turning completed hands itself to the completion cascade)
2. Auto-assigns picks for every locked round that still has gaps
3. Posts the assignments to Slack
"""

from datetime import datetime
from typing import Dict, Optional

from prefect import flow, task, get_run_logger

from config.notifications import send_auto_assignment_notification
from league.processing.auto_assignment import sweep_deadlines
from league.processing.lifecycle import refresh_race_statuses


@task(name="Refresh Race Statuses")
def refresh_statuses(year: Optional[int] = None, now: Optional[datetime] = None) -> Dict:
    logger = get_run_logger()

    summary = refresh_race_statuses(year=year, now=now)
    for transition in summary['transitions']:
        logger.info(
            f"{transition['season']} R{transition['round']}: {transition['from']} -> {transition['to']}"
        )
    return summary


@task(name="Auto-Assign Locked Rounds")
def auto_assign_locked_rounds(year: Optional[int] = None, now: Optional[datetime] = None) -> Dict:
    """
    Fill missing picks for every round past its deadline.

    Returns:
        dict: sweep summary (assigned/unchanged/skipped/errors and details)
    """
    logger = get_run_logger()

    try:
        return sweep_deadlines(now=now, year=year)
    except Exception as e:
        logger.error(f"Deadline sweep failed: {e}")
        return {'races': 0, 'assigned': 0, 'unchanged': 0, 'skipped': 0, 'errors': 1, 'results': []}


@flow(name="Deadline Sweep", log_prints=True)
def deadline_sweep_flow(now: Optional[datetime] = None, year: Optional[int] = None, notify: bool = True) -> Dict:
    """
    Refresh round statuses, then auto-assign missing picks.

    Args:
        now: Clock to evaluate against (defaults to the current time)
        year: Restrict to one season
        notify: Post assignments to Slack

    Returns:
        dict: statuses changed plus the sweep summary
    """
    from django.utils import timezone

    logger = get_run_logger()
    now = now or timezone.now()

    logger.info(f"Deadline sweep at {now.isoformat()}" + (f" for {year}" if year else ""))

    status_summary = refresh_statuses(year, now)
    sweep_summary = auto_assign_locked_rounds(year, now)

    if sweep_summary['assigned']:
        logger.info(f"Auto-assigned {sweep_summary['assigned']} selection(s)")
        if notify:
            send_auto_assignment_notification(sweep_summary)
    if sweep_summary['skipped']:
        logger.warning(f"{sweep_summary['skipped']} selection(s) could not be auto-assigned")

    return {
        'statuses_checked': status_summary['checked'],
        'statuses_changed': status_summary['changed'],
        **sweep_summary,
    }
