"""
Round lifecycle: derive a race's status from wall-clock time.

The status is recomputed on every save of a Race, so nothing in here may
raise. Missing timing fields fall back to the session calendar; when both
are missing the round is reported as scheduled and the gap is logged.

Invariants:
- `completed` is terminal. No recomputation, for any clock value or any
  later edit of the timing fields, moves a race out of it.
- `cancelled` is set by an operator and is never derived from time, so
  it is kept as-is too.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings

logger = logging.getLogger(__name__)

STATUS_SCHEDULED = 'scheduled'
STATUS_QUALIFYING = 'qualifying'
STATUS_SPRINT_QUALIFYING = 'sprint_qualifying'
STATUS_SPRINT = 'sprint'
STATUS_IN_PROGRESS = 'in_progress'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'

STICKY_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)


@dataclass(frozen=True)
class RoundTiming:
    qualifying_start: Optional[datetime] = None
    race_start: Optional[datetime] = None
    sprint_qualifying_start: Optional[datetime] = None
    sprint_start: Optional[datetime] = None

    def is_complete(self, is_sprint_weekend: bool = False) -> bool:
        if not (self.qualifying_start and self.race_start):
            return False
        if is_sprint_weekend:
            return bool(self.sprint_qualifying_start and self.sprint_start)
        return True

    def merged_with(self, fallback: "RoundTiming") -> "RoundTiming":
        """Fill missing fields from `fallback`; fields already set win."""
        return replace(
            self,
            qualifying_start=self.qualifying_start or fallback.qualifying_start,
            race_start=self.race_start or fallback.race_start,
            sprint_qualifying_start=self.sprint_qualifying_start or fallback.sprint_qualifying_start,
            sprint_start=self.sprint_start or fallback.sprint_start,
        )


def _buffer() -> timedelta:
    return timedelta(minutes=getattr(settings, 'ROUND_STATUS_BUFFER_MINUTES', 5))


def _race_duration() -> timedelta:
    return timedelta(hours=getattr(settings, 'RACE_DURATION_HOURS', 3))


def event_end(timing: RoundTiming) -> Optional[datetime]:
    if not timing.race_start:
        return None
    return timing.race_start + _race_duration()


def compute_status(
    timing: RoundTiming,
    now: datetime,
    current_status: Optional[str] = None,
) -> str:
    """
    Status for `timing` at `now`.

    Boundaries are checked from the latest to the earliest, against `now`
    shifted forward by a small buffer so the status does not flap right at
    a session start.
    """
    if current_status in STICKY_STATUSES:
        return current_status

    effective_now = now + _buffer()

    end = event_end(timing)
    if end and effective_now >= end:
        return STATUS_COMPLETED
    if timing.race_start and effective_now >= timing.race_start:
        return STATUS_IN_PROGRESS
    if timing.sprint_start and effective_now >= timing.sprint_start:
        return STATUS_SPRINT
    if timing.sprint_qualifying_start and effective_now >= timing.sprint_qualifying_start:
        return STATUS_SPRINT_QUALIFYING
    if timing.qualifying_start and effective_now >= timing.qualifying_start:
        return STATUS_QUALIFYING
    return STATUS_SCHEDULED


def is_locked(timing: RoundTiming, now: datetime) -> bool:
    """No pick edits once qualifying has started (no buffer applied)."""
    if not timing.qualifying_start:
        return False
    return now >= timing.qualifying_start


def resolve_status(race, now: datetime) -> str:
    """
    Status for a Race instance at `now`. Never raises.
    """
    current = race.status
    if current in STICKY_STATUSES:
        return current

    try:
        timing = race.timing()
    except Exception:
        logger.exception(f"Could not resolve timing for round {race.round_number}; using stored fields only")
        timing = RoundTiming(
            qualifying_start=race.qualifying_start,
            race_start=race.race_start,
            sprint_qualifying_start=race.sprint_qualifying_start,
            sprint_start=race.sprint_start,
        )

    if not timing.race_start and not timing.qualifying_start:
        logger.warning(
            f"Round {race.round_number} ({race.name}) has no timing in the race or the calendar; "
            f"defaulting to '{STATUS_SCHEDULED}'"
        )
        return STATUS_SCHEDULED

    try:
        return compute_status(timing, now, current)
    except Exception:
        logger.exception(f"Status computation failed for round {race.round_number}")
        return STATUS_SCHEDULED


def refresh_race_statuses(year: Optional[int] = None, now: Optional[datetime] = None) -> dict:
    """
    Recompute and persist the status of every race (optionally of one season).

    Only races whose status actually changes are saved, so completed races
    are never touched. Saving a race that becomes completed fires the
    completion event through `Race.save()`.
    """
    from django.utils import timezone
    from league.models import Race

    now = now or timezone.now()
    races = Race.objects.select_related('season').prefetch_related('sessions')
    if year is not None:
        races = races.filter(season__year=year)

    summary = {'checked': 0, 'changed': 0, 'transitions': []}

    for race in races.exclude(status__in=STICKY_STATUSES):
        summary['checked'] += 1
        new_status = resolve_status(race, now)
        if new_status == race.status:
            continue

        old_status = race.status
        race.status = new_status
        race.save(refresh_status=False, update_fields=['status', 'updated_at'])
        summary['changed'] += 1
        summary['transitions'].append({
            'season': race.season.year,
            'round': race.round_number,
            'from': old_status,
            'to': new_status,
        })
        logger.info(f"Round {race.round_number} ({race.name}): {old_status} -> {new_status}")

    return summary
