"""
Usage cycles: a participant may not reuse a driver (or team) until every
driver (or team) of the season has been used once.

Two tracks rotate independently:
- driver: shared by the main and the reserve slot
- team: the constructor pick

Each track is a list of cycles; the last one is current. When the
current cycle reaches the population size a new empty cycle is opened
straight away. The entity that filled the cycle belongs to that cycle
only, never to the fresh one.

`UsageCycleTracker` is the pure rotation logic. The functions below it
load and persist `UsedSelection` rows, always under a row lock.
"""

import logging
from typing import Dict, Iterable, List, Optional

from django.db import transaction

from config.rules import FANTASY_LEAGUE_RULES
from .normalization import is_blank, match_entity, normalize_name

logger = logging.getLogger(__name__)

DRIVER_TRACK = 'driver'
TEAM_TRACK = 'team'
TRACKS = (DRIVER_TRACK, TEAM_TRACK)


class UsageCycleTracker:
    """
    Rotation state of one track for one (user, league).

    Args:
        cycles: stored cycles, oldest first
        population: canonical names of every selectable entity, in
            catalog order
        recorded: round -> entities already recorded for that round
        label: identity used in log lines
    """

    def __init__(
        self,
        cycles: Optional[List[List[str]]],
        population: Iterable[str],
        recorded: Optional[Dict[str, List[str]]] = None,
        label: str = '',
    ):
        self.cycles = [list(cycle) for cycle in (cycles or [])] or [[]]
        self.population = list(population)
        self.recorded = {str(k): list(v) for k, v in (recorded or {}).items()}
        self.label = label

    @property
    def size(self) -> int:
        return len(self.population)

    @property
    def current(self) -> List[str]:
        return self.cycles[-1]

    def _in_current(self, entity: str) -> bool:
        key = normalize_name(entity)
        return any(normalize_name(used) == key for used in self.current)

    def _canonical(self, entity: str) -> str:
        return match_entity(entity, self.population) or entity.strip()

    def is_current_full(self) -> bool:
        return self.size > 0 and len(self.current) >= self.size

    def can_use(self, entity: Optional[str]) -> bool:
        if is_blank(entity):
            return True
        return not self._in_current(entity)

    def available_entities(self) -> List[str]:
        """
        Entities not yet used in the current cycle, in catalog order.

        Empty when the current cycle is already full: the next
        `record_use` opens the fresh cycle.
        """
        if self.is_current_full():
            return []
        return [name for name in self.population if not self._in_current(name)]

    def record_use(self, entity: Optional[str], round_number: Optional[int] = None) -> bool:
        """
        Record that `entity` was used. Returns True when the cycles changed.
        """
        if is_blank(entity):
            return False

        canonical = self._canonical(entity)
        round_key = str(round_number) if round_number is not None else None

        if round_key is not None:
            already = self.recorded.get(round_key, [])
            if any(normalize_name(name) == normalize_name(canonical) for name in already):
                return False
            self.recorded.setdefault(round_key, []).append(canonical)

        if self.is_current_full():
            logger.info(f"{self.label}: current cycle was already full, opening a new one")
            self.cycles.append([])

        if self._in_current(canonical):
            return False

        self.current.append(canonical)

        if self.is_current_full():
            self.cycles.append([])
            self._guard_fresh_cycle(canonical)

        return True

    def _guard_fresh_cycle(self, entity: str):
        # The entity that closed a cycle must not leak into the one just opened.
        fresh = self.cycles[-1]
        key = normalize_name(entity)
        leaked = [name for name in fresh if normalize_name(name) == key]
        if leaked:
            logger.warning(
                f"{self.label}: '{entity}' was recorded into the new cycle as well as the completed one; removing it"
            )
            self.cycles[-1] = [name for name in fresh if normalize_name(name) != key]

    def remove_use(self, entity: Optional[str], round_number: Optional[int] = None) -> bool:
        """
        Undo a use from the current cycle (pick corrected after the fact).

        Uses already sealed in a completed cycle stay where they are.
        """
        if is_blank(entity):
            return False

        key = normalize_name(entity)
        if round_number is not None:
            round_key = str(round_number)
            remaining = [n for n in self.recorded.get(round_key, []) if normalize_name(n) != key]
            if remaining:
                self.recorded[round_key] = remaining
            else:
                self.recorded.pop(round_key, None)

        if not self._in_current(entity):
            logger.info(f"{self.label}: '{entity}' is not in the current cycle, nothing to remove")
            return False

        self.cycles[-1] = [name for name in self.current if normalize_name(name) != key]
        return True

    def record_round(self, round_number: int, entities: Iterable[Optional[str]]) -> bool:
        """
        Record the final picks of one round on this track.

        If the round was recorded before with different entities, the
        stale ones are taken back out of the current cycle first.
        """
        wanted = [name for name in entities if not is_blank(name)]
        wanted_keys = {normalize_name(name) for name in wanted}
        changed = False

        for previous in list(self.recorded.get(str(round_number), [])):
            if normalize_name(previous) not in wanted_keys:
                logger.info(f"{self.label}: round {round_number} pick changed, releasing '{previous}'")
                changed = self.remove_use(previous, round_number) or changed

        for name in wanted:
            changed = self.record_use(name, round_number) or changed
        return changed


def population_for(season, track: str) -> List[str]:
    """Catalog of a season for one track, with the rules' default size as a fallback"""
    if track == DRIVER_TRACK:
        names = season.driver_names
        default_size = FANTASY_LEAGUE_RULES['selection']['default_driver_pool_size']
    else:
        names = season.team_names
        default_size = FANTASY_LEAGUE_RULES['selection']['default_team_pool_size']

    if not names:
        logger.warning(f"Season {season.year} has no {track} catalog; using a pool of {default_size}")
        return [f"{track}-{n}" for n in range(1, default_size + 1)]
    return names


def _cycles_field(track: str) -> str:
    return 'driver_cycles' if track == DRIVER_TRACK else 'team_cycles'


def tracker_from_state(state, track: str, population: Iterable[str]) -> UsageCycleTracker:
    return UsageCycleTracker(
        getattr(state, _cycles_field(track)),
        population,
        recorded=(state.recorded_rounds or {}).get(track, {}),
        label=f"{state.user_id}/{state.league_id}/{track}",
    )


def store_tracker(state, track: str, tracker: UsageCycleTracker):
    setattr(state, _cycles_field(track), tracker.cycles)
    ledger = dict(state.recorded_rounds or {})
    ledger[track] = tracker.recorded
    state.recorded_rounds = ledger


def lock_state(user, league):
    """
    The (user, league) usage row, locked for the current transaction.

    Must be called inside `transaction.atomic()`.
    """
    from league.models import UsedSelection

    state, _ = UsedSelection.objects.select_for_update().get_or_create(user=user, league=league)
    return state


def peek_state(user, league):
    """
    The (user, league) usage row, locked if it exists.

    Falls back to an unsaved empty row so read-only callers never create one.
    """
    from league.models import UsedSelection

    state = UsedSelection.objects.select_for_update().filter(user=user, league=league).first()
    if state is None:
        state = UsedSelection(user=user, league=league)
    return state


def load_trackers(user, league, for_update=False):
    """(state, {track: tracker}) for a user in a league"""
    from league.models import UsedSelection

    if for_update:
        state = lock_state(user, league)
    else:
        state = UsedSelection.objects.filter(user=user, league=league).first()
        if state is None:
            state = UsedSelection(user=user, league=league)

    season = league.season
    trackers = {track: tracker_from_state(state, track, population_for(season, track)) for track in TRACKS}
    return state, trackers


def record_selection(user, league, round_number: int, main_driver, reserve_driver, team) -> bool:
    """
    Record a round's final picks on both tracks. Returns True when the
    stored cycles changed.
    """
    with transaction.atomic():
        state, trackers = load_trackers(user, league, for_update=True)
        changed = trackers[DRIVER_TRACK].record_round(round_number, [main_driver, reserve_driver])
        changed = trackers[TEAM_TRACK].record_round(round_number, [team]) or changed

        for track, tracker in trackers.items():
            store_tracker(state, track, tracker)
        state.save()

    if changed:
        logger.info(
            f"Recorded round {round_number} for {user} in {league.name}: "
            f"{main_driver} / {reserve_driver} / {team}"
        )
    return changed


def get_available(user, league) -> Dict[str, List[str]]:
    """Read-only: entities still usable in the current cycles"""
    _, trackers = load_trackers(user, league)
    return {
        'drivers': trackers[DRIVER_TRACK].available_entities(),
        'teams': trackers[TEAM_TRACK].available_entities(),
    }


def finalised_selections(user, league):
    """Selections whose picks count as used, in round order"""
    from league.models import Race, RaceSelection

    selections = (
        RaceSelection.objects.filter(user=user, league=league)
        .select_related('race')
        .exclude(main_driver='')
        .order_by('round')
    )
    return [
        selection for selection in selections
        if selection.status == RaceSelection.STATUS_AUTO_ASSIGNED
        or (selection.race is not None and selection.race.status == Race.STATUS_COMPLETED)
    ]


def rebuild_used_selections(user, league):
    """
    Throw the stored cycles away and replay every finalised selection in
    ascending round order.
    """
    with transaction.atomic():
        state = lock_state(user, league)
        season = league.season
        trackers = {
            track: UsageCycleTracker([], population_for(season, track), label=f"{user}/{league.name}/{track}")
            for track in TRACKS
        }

        replayed = 0
        for selection in finalised_selections(user, league):
            trackers[DRIVER_TRACK].record_round(selection.round, [selection.main_driver, selection.reserve_driver])
            trackers[TEAM_TRACK].record_round(selection.round, [selection.team])
            replayed += 1

        state.recorded_rounds = {}
        for track, tracker in trackers.items():
            store_tracker(state, track, tracker)
        state.save()

    logger.info(f"Rebuilt usage cycles for {user} in {league.name} from {replayed} selection(s)")
    return state


def find_cycle_anomalies(state, driver_population_size: int, team_population_size: int) -> List[dict]:
    """
    Integrity report of one UsedSelection row.

    Finds duplicates within a cycle, cycles larger than the population,
    a full cycle left as the current one, and the leak where the entity
    that closed a cycle was also recorded as the first entry of the next.
    """
    anomalies = []
    sizes = {DRIVER_TRACK: driver_population_size, TEAM_TRACK: team_population_size}

    for track in TRACKS:
        cycles = getattr(state, _cycles_field(track)) or []
        size = sizes[track]

        for index, cycle in enumerate(cycles):
            keys = [normalize_name(name) for name in cycle]
            duplicates = sorted({name for name, key in zip(cycle, keys) if keys.count(key) > 1})
            if duplicates:
                anomalies.append({'track': track, 'cycle': index, 'type': 'duplicate', 'entities': duplicates})
            if size and len(cycle) > size:
                anomalies.append({'track': track, 'cycle': index, 'type': 'oversize', 'entities': list(cycle)})

        if cycles and size and len(cycles[-1]) >= size:
            anomalies.append({'track': track, 'cycle': len(cycles) - 1, 'type': 'unopened', 'entities': []})

        for index in range(1, len(cycles)):
            previous, current = cycles[index - 1], cycles[index]
            if not previous or not current or (size and len(previous) < size):
                continue
            if normalize_name(previous[-1]) == normalize_name(current[0]):
                anomalies.append({'track': track, 'cycle': index, 'type': 'leak', 'entities': [current[0]]})

    return anomalies
