"""
Points for one selection from one round's results.

`calculate_race_points` is a pure function over plain data: it does not
touch the database, and an unknown name scores 0 instead of raising.

Slots:
- main: the main driver's Grand Prix points. If the main driver did not
  start, the reserve's Grand Prix points are used instead. DNF and DSQ
  count as participation: the recorded points stand, no substitution.
- reserve: on a sprint weekend, the reserve's Sprint points; otherwise 0.
- team: the team aggregate (race + sprint already folded in).

Card effects are applied on top of an unmodified base breakdown, which is
kept in the result so callers can compare the two.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from django.conf import settings

from config.rules import FANTASY_LEAGUE_RULES
from .normalization import is_blank, match_entity, names_match, normalize_name
from .results import finish_points

logger = logging.getLogger(__name__)

STATUS_OK = 'OK'
STATUS_DNS = 'DNS'
STATUS_DNF = 'DNF'
STATUS_DSQ = 'DSQ'
STATUS_NOT_FOUND = 'NOT_FOUND'


@dataclass
class DriverRow:
    driver_name: str
    team_name: str = ''
    position: Optional[int] = None
    points: int = 0
    did_not_finish: bool = False
    did_not_start: bool = False
    disqualified: bool = False


@dataclass
class TeamRow:
    team_name: str
    race_points: int = 0
    sprint_points: int = 0
    total_points: int = 0

    @property
    def points(self) -> int:
        if self.total_points:
            return self.total_points
        return self.race_points + self.sprint_points


@dataclass
class RoundResults:
    """Already-parsed results of one round"""
    season_year: int
    round_number: int
    is_sprint_weekend: bool = False
    race_rows: List[DriverRow] = field(default_factory=list)
    sprint_rows: List[DriverRow] = field(default_factory=list)
    team_rows: List[TeamRow] = field(default_factory=list)

    @classmethod
    def from_race(cls, race) -> "RoundResults":
        from league.models import DriverResult

        race_rows, sprint_rows = [], []
        for result in race.driver_results.all():
            row = DriverRow(
                driver_name=result.driver_name,
                team_name=result.team_name,
                position=result.position,
                points=result.points,
                did_not_finish=result.did_not_finish,
                did_not_start=result.did_not_start,
                disqualified=result.disqualified,
            )
            if result.session_type == DriverResult.SESSION_SPRINT:
                sprint_rows.append(row)
            else:
                race_rows.append(row)

        team_rows = [
            TeamRow(t.team_name, t.race_points, t.sprint_points, t.total_points)
            for t in race.team_results.all()
        ]
        return cls(
            season_year=race.season.year,
            round_number=race.round_number,
            is_sprint_weekend=race.is_sprint_weekend,
            race_rows=race_rows,
            sprint_rows=sprint_rows,
            team_rows=team_rows,
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.race_rows) and bool(self.team_rows)


@dataclass
class Modifier:
    """
    One card played on a round.

    `target_name` names the driver (switcheroo), team (espionage) or
    member (mirror) a card points at. `mirrored_points` is the base
    breakdown of the mirrored member, resolved by the caller.
    """
    target: str
    effect_type: str
    effect_value: Optional[int] = None
    condition: str = ''
    target_name: str = ''
    mirrored_points: Optional[dict] = None


@dataclass
class ScoreResult:
    total: int
    breakdown: dict

    @property
    def base_points(self) -> dict:
        return self.breakdown['base_points']


def _find(rows: Iterable, name: Optional[str], attr: str):
    if is_blank(name):
        return None
    rows = list(rows)
    canonical = match_entity(name, [getattr(row, attr) for row in rows])
    if canonical is None:
        return None
    for row in rows:
        if getattr(row, attr) == canonical:
            return row
    return None


def driver_status(row: Optional[DriverRow]) -> str:
    if row is None:
        return STATUS_NOT_FOUND
    if row.did_not_start:
        return STATUS_DNS
    if row.disqualified:
        return STATUS_DSQ
    if row.did_not_finish:
        return STATUS_DNF
    return STATUS_OK


def _row_points(row: Optional[DriverRow]) -> int:
    """Recorded points of a row; a non-starter scores nothing"""
    if row is None or row.did_not_start:
        return 0
    return max(int(row.points or 0), 0)


def cards_apply(results: RoundResults) -> bool:
    if results.is_sprint_weekend and not FANTASY_LEAGUE_RULES['cards']['applies_on_sprint_weekends']:
        return False
    return results.season_year >= getattr(settings, 'CARD_EFFECTS_FROM_SEASON', 2026)


def _driver_row(rows: Iterable[DriverRow], name: Optional[str]) -> Optional[DriverRow]:
    return _find(rows, name, 'driver_name')


def _teammate_row(results: RoundResults, row: Optional[DriverRow]) -> Optional[DriverRow]:
    """The other car of `row`'s team in the Grand Prix"""
    if row is None or not row.team_name:
        return None
    return next(
        (
            other for other in results.race_rows
            if other is not row and names_match(other.team_name, row.team_name)
        ),
        None,
    )


def _team_cars(results: RoundResults, team: Optional[str]) -> List[DriverRow]:
    if is_blank(team):
        return []
    return [row for row in results.race_rows if names_match(row.team_name, team)]


def _field_size(results: RoundResults) -> int:
    return len(results.race_rows) or 20


def _driver_condition_met(condition: str, row: Optional[DriverRow], results: RoundResults) -> bool:
    if row is None or not row.position:
        return False
    if condition == 'top5':
        return row.position <= 5
    if condition == 'top10':
        return row.position <= 10
    if condition == 'bottom5':
        return row.position > _field_size(results) - 5
    if condition == 'ahead_of_teammate':
        teammate = _teammate_row(results, row)
        return bool(teammate and teammate.position and row.position < teammate.position)
    logger.warning(f"Unknown driver card condition '{condition}'")
    return False


def _team_condition_bonus(condition: str, cars: List[DriverRow], base_team_points: int,
                          results: RoundResults, value: Optional[int]) -> int:
    rules = FANTASY_LEAGUE_RULES['cards']['conditional_bonus']
    bonus = value if value is not None else rules['default_value']
    positions = [row.position for row in cars[:2]]
    pair = len(positions) == 2

    if condition == 'both_top5':
        return bonus if pair and all(p and p <= 5 for p in positions) else 0
    if condition == 'both_top10':
        return bonus if pair and all(p and p <= 10 for p in positions) else 0
    if condition == 'both_outside_points':
        return bonus if pair and all(not p or p > 10 for p in positions) else 0
    if condition == 'both_bottom5':
        threshold = _field_size(results) - 4
        return bonus if pair and all(p and p >= threshold for p in positions) else 0
    if condition == 'one_last_place':
        return bonus * sum(1 for row in cars if row.position == _field_size(results))
    if condition == 'sponsors':
        if base_team_points == 0:
            return value if value is not None else rules['sponsors_zero']
        if base_team_points == 1:
            return rules['sponsors_one']
        return 0
    logger.warning(f"Unknown team card condition '{condition}'")
    return 0


def _apply_modifiers(breakdown: dict, modifiers, results: RoundResults, team: Optional[str]) -> List[dict]:
    """
    Apply cards in order. Driver cards hit the active driver, whose points
    sit in the main slot; team cards hit the team slot. A card whose
    condition is not met is recorded with a zero delta.
    """
    rules = FANTASY_LEAGUE_RULES['cards']
    applied = []
    base = breakdown['base_points']

    for modifier in modifiers:
        effect = modifier.effect_type
        value = modifier.effect_value
        condition = getattr(modifier, 'condition', '') or ''
        active = breakdown['active_driver']
        active_row = _driver_row(results.race_rows, active)
        main_before = breakdown['main_driver_points']
        target = active

        if effect == 'multiply':
            value = value if value is not None else rules['multiply']['default_value']
            breakdown['main_driver_points'] = main_before * value
        elif effect == 'flat_bonus':
            value = value if value is not None else rules['flat_bonus']['default_value']
            breakdown['main_driver_points'] = main_before + value
        elif effect in ('teamwork', 'teamwork2'):
            teammate = _teammate_row(results, active_row)
            if teammate is None:
                logger.info(f"No teammate found for {active}, {effect} card has no effect")
                continue
            teammate_points = _row_points(teammate)
            if effect == 'teamwork':
                breakdown['main_driver_points'] = teammate_points
            else:
                breakdown['main_driver_points'] = main_before + teammate_points
            target = teammate.driver_name
        elif effect == 'switcheroo':
            target = getattr(modifier, 'target_name', '') or ''
            breakdown['main_driver_points'] = _row_points(_driver_row(results.race_rows, target))
        elif effect == 'position_adjust':
            if active_row is None or not active_row.position:
                continue
            places = value if value is not None else rules['position_adjust']['default_value']
            new_position = max(1, active_row.position - places)
            breakdown['main_driver_points'] = finish_points(new_position)
        elif effect == 'mirror':
            mirrored = getattr(modifier, 'mirrored_points', None)
            if mirrored is None:
                logger.info(f"Mirror card without a mirrored score in round {results.round_number}")
                continue
            reserve_before = breakdown['reserve_driver_points']
            breakdown['main_driver_points'] = mirrored.get('main_driver_points', 0)
            breakdown['reserve_driver_points'] = mirrored.get('reserve_driver_points', 0)
            delta = (breakdown['main_driver_points'] - main_before) + (breakdown['reserve_driver_points'] - reserve_before)
            applied.append({'effect': effect, 'target': getattr(modifier, 'target_name', ''), 'value': value, 'delta': delta})
            continue
        elif effect == 'conditional_bonus' and modifier.target == 'driver':
            bonus = value if value is not None else rules['conditional_bonus']['default_value']
            if _driver_condition_met(condition, active_row, results):
                breakdown['main_driver_points'] = main_before + bonus
        elif effect == 'conditional_bonus':
            delta = _team_condition_bonus(condition, _team_cars(results, team), base['team_points'], results, value)
            breakdown['team_points'] += delta
            applied.append({'effect': effect, 'target': team, 'value': value, 'condition': condition, 'delta': delta})
            continue
        elif effect == 'podium':
            per_podium = value if value is not None else rules['podium']['points_per_podium']
            podiums = sum(
                1 for row in _team_cars(results, team)
                if row.position and row.position <= 3 and not row.disqualified
            )
            delta = min(podiums * per_podium, rules['podium']['max_points'])
            breakdown['team_points'] += delta
            applied.append({'effect': effect, 'target': team, 'value': value, 'delta': delta})
            continue
        elif effect == 'espionage':
            target = getattr(modifier, 'target_name', '') or ''
            spied = _find(results.team_rows, target, 'team_name')
            before = breakdown['team_points']
            breakdown['team_points'] = max(spied.points, 0) if spied else 0
            applied.append({'effect': effect, 'target': target, 'value': value, 'delta': breakdown['team_points'] - before})
            continue
        elif effect == 'undercut':
            cars = [row for row in _team_cars(results, team) if row.position]
            if len(cars) < 2:
                continue
            better, worse = sorted(cars[:2], key=lambda row: row.position)
            new_position = min(better.position + 1, _field_size(results))
            delta = finish_points(new_position) - _row_points(worse)
            breakdown['team_points'] += delta
            applied.append({'effect': effect, 'target': team, 'value': value, 'delta': delta})
            continue
        else:
            logger.warning(f"Unknown card effect '{effect}' ignored")
            continue

        entry = {'effect': effect, 'target': target, 'value': value, 'delta': breakdown['main_driver_points'] - main_before}
        if condition:
            entry['condition'] = condition
        applied.append(entry)

    breakdown['main_driver_points'] = max(breakdown['main_driver_points'], 0)
    breakdown['team_points'] = max(breakdown['team_points'], 0)
    return applied


def calculate_race_points(picks, results: RoundResults, modifiers: Optional[Iterable] = None) -> ScoreResult:
    """
    Score `picks` (anything with main_driver, reserve_driver and team)
    against one round's results.
    """
    main = picks.main_driver
    reserve = picks.reserve_driver
    team = picks.team

    main_row = _find(results.race_rows, main, 'driver_name')
    reserve_race_row = _find(results.race_rows, reserve, 'driver_name')
    reserve_sprint_row = _find(results.sprint_rows, reserve, 'driver_name')
    team_row = _find(results.team_rows, team, 'team_name')

    main_status = driver_status(main_row)
    active_driver = main
    substituted_by = None

    if main_status == STATUS_DNS:
        main_points = _row_points(reserve_race_row)
        active_driver = reserve
        substituted_by = reserve
    else:
        main_points = _row_points(main_row)

    if results.is_sprint_weekend:
        reserve_points = _row_points(reserve_sprint_row)
    else:
        reserve_points = 0

    team_points = max(team_row.points, 0) if team_row else 0

    for name, row in ((main, main_row), (team, team_row)):
        if row is None and not is_blank(name):
            logger.info(f"Round {results.round_number}: no result for '{name}', scoring 0")

    base = {
        'main_driver_points': main_points,
        'reserve_driver_points': reserve_points,
        'team_points': team_points,
        'total': main_points + reserve_points + team_points,
    }

    breakdown = {
        'main_driver': main,
        'reserve_driver': reserve,
        'team': team,
        'is_sprint_weekend': results.is_sprint_weekend,
        'main_driver_status': main_status,
        'reserve_driver_status': driver_status(reserve_sprint_row if results.is_sprint_weekend else reserve_race_row),
        'substituted_by': substituted_by,
        'active_driver': active_driver,
        'main_driver_points': main_points,
        'reserve_driver_points': reserve_points,
        'team_points': team_points,
        'base_points': base,
        'modifiers': [],
    }

    modifiers = list(modifiers or [])
    if modifiers:
        if cards_apply(results):
            breakdown['modifiers'] = _apply_modifiers(breakdown, modifiers, results, team)
        else:
            logger.info(f"Round {results.round_number}: card effects do not apply, ignoring {len(modifiers)} card(s)")

    total = breakdown['main_driver_points'] + breakdown['reserve_driver_points'] + breakdown['team_points']
    return ScoreResult(total=max(total, 0), breakdown=breakdown)


def raw_points_lookup(picks, results: RoundResults) -> dict:
    """
    Points read straight off the result rows, used to double check a
    computed base breakdown.
    """
    def lookup(rows, name, attr):
        key = normalize_name(name)
        return next((row for row in rows if key and normalize_name(getattr(row, attr)) == key), None)

    main_row = lookup(results.race_rows, picks.main_driver, 'driver_name')
    reserve_race_row = lookup(results.race_rows, picks.reserve_driver, 'driver_name')
    reserve_sprint_row = lookup(results.sprint_rows, picks.reserve_driver, 'driver_name')
    team_row = lookup(results.team_rows, picks.team, 'team_name')

    if main_row is not None and main_row.did_not_start:
        main_points = _row_points(reserve_race_row)
    else:
        main_points = _row_points(main_row)

    return {
        'main_driver_points': main_points,
        'reserve_driver_points': _row_points(reserve_sprint_row) if results.is_sprint_weekend else 0,
        'team_points': max(team_row.points, 0) if team_row else 0,
    }


def find_mismatches(base_points: dict, raw: dict) -> List[str]:
    """Slots whose computed base points differ from the raw lookup"""
    return [
        f"{slot}: computed {base_points.get(slot)} vs raw {expected}"
        for slot, expected in raw.items()
        if base_points.get(slot) != expected
    ]
