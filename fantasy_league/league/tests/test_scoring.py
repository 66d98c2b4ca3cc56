"""
Unit tests for the scoring engine.

All inputs are plain data; no database access.
"""

from types import SimpleNamespace

from django.test import SimpleTestCase, override_settings

from league.processing.scoring import (
    DriverRow,
    Modifier,
    RoundResults,
    TeamRow,
    calculate_race_points,
    find_mismatches,
    raw_points_lookup,
)
from league.processing.normalization import is_blank, match_entity


def picks(main='Driver A', reserve='Driver B', team='Team X'):
    return SimpleNamespace(main_driver=main, reserve_driver=reserve, team=team)


def results(race_rows, team_rows=None, sprint_rows=None, year=2025, sprint=False):
    return RoundResults(
        season_year=year,
        round_number=5,
        is_sprint_weekend=sprint,
        race_rows=race_rows,
        sprint_rows=sprint_rows or [],
        team_rows=team_rows or [TeamRow('Team X', race_points=18, total_points=18)],
    )


class SubstitutionTests(SimpleTestCase):
    """DNS substitutes the reserve; DNF and DSQ do not"""

    def test_dns_main_takes_reserve_points(self):
        round_results = results([
            DriverRow('Driver A', 'Team X', points=0, did_not_start=True),
            DriverRow('Driver B', 'Team Y', position=4, points=12),
        ])

        score = calculate_race_points(picks(), round_results)

        self.assertEqual(score.breakdown['main_driver_points'], 12)
        self.assertEqual(score.breakdown['main_driver_status'], 'DNS')
        self.assertEqual(score.breakdown['substituted_by'], 'Driver B')
        self.assertEqual(score.breakdown['reserve_driver_points'], 0)

    def test_dnf_keeps_recorded_points(self):
        round_results = results([
            DriverRow('Driver A', 'Team X', points=4, did_not_finish=True),
            DriverRow('Driver B', 'Team Y', position=4, points=12),
        ])

        score = calculate_race_points(picks(), round_results)

        self.assertEqual(score.breakdown['main_driver_points'], 4)
        self.assertEqual(score.breakdown['main_driver_status'], 'DNF')
        self.assertIsNone(score.breakdown['substituted_by'])

    def test_dsq_counts_as_participation(self):
        round_results = results([
            DriverRow('Driver A', 'Team X', points=0, disqualified=True),
            DriverRow('Driver B', 'Team Y', position=4, points=12),
        ])

        score = calculate_race_points(picks(), round_results)

        self.assertEqual(score.breakdown['main_driver_points'], 0)
        self.assertEqual(score.breakdown['main_driver_status'], 'DSQ')

    def test_dns_main_with_reserve_total_of_29(self):
        """DNS main (0) substituted by reserve (11) plus team aggregate 18"""
        round_results = results([
            DriverRow('Driver A', 'Team X', points=0, did_not_start=True),
            DriverRow('Driver B', 'Team Y', position=5, points=11),
        ])

        score = calculate_race_points(picks(), round_results)

        self.assertEqual(score.total, 29)
        self.assertEqual(score.breakdown['main_driver_points'], 11)
        self.assertEqual(score.breakdown['team_points'], 18)

    def test_both_drivers_dns_scores_zero(self):
        round_results = results([
            DriverRow('Driver A', 'Team X', did_not_start=True),
            DriverRow('Driver B', 'Team Y', did_not_start=True),
        ])
        score = calculate_race_points(picks(), round_results)
        self.assertEqual(score.breakdown['main_driver_points'], 0)


class SprintWeekendTests(SimpleTestCase):

    def setUp(self):
        self.round_results = results(
            race_rows=[
                DriverRow('Driver A', 'Team X', position=1, points=25),
                DriverRow('Driver B', 'Team Y', position=3, points=15),
            ],
            sprint_rows=[
                DriverRow('Driver A', 'Team X', position=4, points=5),
                DriverRow('Driver B', 'Team Y', position=2, points=7),
            ],
            team_rows=[TeamRow('Team X', race_points=25, sprint_points=5, total_points=30)],
            sprint=True,
        )

    def test_reserve_scores_sprint_result(self):
        score = calculate_race_points(picks(), self.round_results)

        self.assertEqual(score.breakdown['main_driver_points'], 25)
        self.assertEqual(score.breakdown['reserve_driver_points'], 7)
        self.assertEqual(score.breakdown['team_points'], 30)
        self.assertEqual(score.total, 62)

    def test_reserve_dns_in_sprint_scores_zero(self):
        self.round_results.sprint_rows[1].did_not_start = True
        score = calculate_race_points(picks(), self.round_results)
        self.assertEqual(score.breakdown['reserve_driver_points'], 0)


class LookupTests(SimpleTestCase):

    def test_unknown_names_score_zero(self):
        round_results = results([DriverRow('Driver A', 'Team X', position=1, points=25)])

        score = calculate_race_points(picks('Nobody', 'Somebody', 'No Team'), round_results)

        self.assertEqual(score.total, 0)
        self.assertEqual(score.breakdown['main_driver_status'], 'NOT_FOUND')

    def test_whitespace_only_pick_scores_zero(self):
        round_results = results([
            DriverRow('Driver A', 'Team X', position=1, points=25),
            DriverRow('Driver B', 'Team Y', position=2, points=18),
        ])

        score = calculate_race_points(picks(main='   ', reserve='Driver A'), round_results)

        self.assertEqual(score.breakdown['main_driver_points'], 0)
        self.assertEqual(score.breakdown['main_driver_status'], 'NOT_FOUND')
        self.assertEqual(score.total, 18)

    def test_blank_names_never_match(self):
        population = ['Driver A', 'Driver B']
        self.assertTrue(is_blank('   '))
        self.assertTrue(is_blank(' none '))
        self.assertIsNone(match_entity('   ', population))
        self.assertIsNone(match_entity('\t\n', population))

    def test_names_match_without_case_or_accents(self):
        round_results = results(
            [DriverRow('Sergio Pérez', 'Team X', position=2, points=18)],
            team_rows=[TeamRow('Team X', total_points=20)],
        )

        score = calculate_race_points(picks('sergio perez', 'Driver B', 'team x'), round_results)

        self.assertEqual(score.breakdown['main_driver_points'], 18)
        self.assertEqual(score.breakdown['team_points'], 20)

    def test_team_total_wins_over_split_columns(self):
        round_results = results(
            [DriverRow('Driver A', 'Team X', position=1, points=25)],
            team_rows=[TeamRow('Team X', race_points=0, sprint_points=0, total_points=33)],
        )
        score = calculate_race_points(picks(), round_results)
        self.assertEqual(score.breakdown['team_points'], 33)

    def test_negative_points_are_clamped(self):
        round_results = results(
            [DriverRow('Driver A', 'Team X', position=12, points=-5)],
            team_rows=[TeamRow('Team X', total_points=-3)],
        )
        score = calculate_race_points(picks(), round_results)
        self.assertEqual(score.total, 0)


class ModifierTests(SimpleTestCase):
    """Card effects on top of the base breakdown"""

    def setUp(self):
        self.race_rows = [
            DriverRow('Driver A', 'Team X', position=2, points=18),
            DriverRow('Driver C', 'Team X', position=3, points=15),
            DriverRow('Driver D', 'Team X', position=1, points=25),
            DriverRow('Driver B', 'Team Y', position=4, points=12),
        ]

    @override_settings(CARD_EFFECTS_FROM_SEASON=2026)
    def test_multiply_keeps_base_breakdown(self):
        score = calculate_race_points(
            picks(), results(self.race_rows, year=2026), [Modifier('driver', 'multiply')]
        )

        self.assertEqual(score.breakdown['main_driver_points'], 36)
        self.assertEqual(score.base_points['main_driver_points'], 18)
        self.assertEqual(score.base_points['total'], 36)
        self.assertEqual(score.total, 54)
        self.assertEqual(score.breakdown['modifiers'][0]['delta'], 18)

    @override_settings(CARD_EFFECTS_FROM_SEASON=2026)
    def test_flat_bonus_hits_substituted_reserve(self):
        rows = [
            DriverRow('Driver A', 'Team X', did_not_start=True),
            DriverRow('Driver B', 'Team Y', position=4, points=12),
        ]
        score = calculate_race_points(picks(), results(rows, year=2026), [Modifier('driver', 'flat_bonus', 5)])

        self.assertEqual(score.breakdown['main_driver_points'], 17)
        self.assertEqual(score.breakdown['modifiers'][0]['target'], 'Driver B')

    @override_settings(CARD_EFFECTS_FROM_SEASON=2026)
    def test_podium_bonus_is_capped(self):
        score = calculate_race_points(picks(), results(self.race_rows, year=2026), [Modifier('team', 'podium')])

        self.assertEqual(score.breakdown['team_points'], 18 + 16)

    @override_settings(CARD_EFFECTS_FROM_SEASON=2026)
    def test_no_effects_before_cutoff_season(self):
        score = calculate_race_points(picks(), results(self.race_rows, year=2025), [Modifier('driver', 'multiply')])

        self.assertEqual(score.breakdown['main_driver_points'], 18)
        self.assertEqual(score.breakdown['modifiers'], [])

    @override_settings(CARD_EFFECTS_FROM_SEASON=2026)
    def test_no_effects_on_sprint_weekends(self):
        score = calculate_race_points(
            picks(), results(self.race_rows, year=2026, sprint=True), [Modifier('driver', 'multiply')]
        )
        self.assertEqual(score.breakdown['modifiers'], [])


@override_settings(CARD_EFFECTS_FROM_SEASON=2026)
class CardEffectTests(SimpleTestCase):
    """
    Six cars, two per team. Base score of the default picks
    (Driver A / Driver B / Team X): 15 + 0 + 23 = 38.
    """

    def setUp(self):
        self.round_results = results(
            race_rows=[
                DriverRow('Driver B', 'Team Y', position=1, points=25),
                DriverRow('Driver D', 'Team Y', position=2, points=18),
                DriverRow('Driver A', 'Team X', position=3, points=15),
                DriverRow('Driver C', 'Team X', position=6, points=8),
                DriverRow('Driver E', 'Team Z', position=5, points=10),
                DriverRow('Driver F', 'Team Z', position=4, points=12),
            ],
            team_rows=[
                TeamRow('Team X', total_points=23),
                TeamRow('Team Y', total_points=43),
                TeamRow('Team Z', total_points=22),
            ],
            year=2026,
        )

    def play(self, modifier, **pick_overrides):
        return calculate_race_points(picks(**pick_overrides), self.round_results, [modifier])

    def test_teamwork_takes_teammate_points(self):
        score = self.play(Modifier('driver', 'teamwork'))

        self.assertEqual(score.breakdown['main_driver_points'], 8)
        self.assertEqual(score.breakdown['modifiers'][0]['target'], 'Driver C')
        self.assertEqual(score.breakdown['modifiers'][0]['delta'], -7)
        self.assertEqual(score.base_points['main_driver_points'], 15)

    def test_teamwork2_adds_teammate_points(self):
        score = self.play(Modifier('driver', 'teamwork2'))
        self.assertEqual(score.breakdown['main_driver_points'], 23)
        self.assertEqual(score.total, 46)

    def test_switcheroo_uses_named_driver(self):
        score = self.play(Modifier('driver', 'switcheroo', target_name='driver b'))
        self.assertEqual(score.breakdown['main_driver_points'], 25)

    def test_position_adjust(self):
        self.assertEqual(self.play(Modifier('driver', 'position_adjust')).breakdown['main_driver_points'], 18)
        self.assertEqual(self.play(Modifier('driver', 'position_adjust', 5)).breakdown['main_driver_points'], 25)

    def test_mirror_copies_driver_slots(self):
        mirrored = {'main_driver_points': 25, 'reserve_driver_points': 7, 'team_points': 40}

        score = self.play(Modifier('driver', 'mirror', target_name='bob', mirrored_points=mirrored))

        self.assertEqual(score.breakdown['main_driver_points'], 25)
        self.assertEqual(score.breakdown['reserve_driver_points'], 7)
        self.assertEqual(score.breakdown['team_points'], 23)
        self.assertEqual(score.total, 55)

    def test_mirror_without_target_score_has_no_effect(self):
        score = self.play(Modifier('driver', 'mirror'))
        self.assertEqual(score.total, 38)
        self.assertEqual(score.breakdown['modifiers'], [])

    def test_driver_conditional_bonus(self):
        self.assertEqual(self.play(Modifier('driver', 'conditional_bonus', condition='top5')).total, 43)
        self.assertEqual(self.play(Modifier('driver', 'conditional_bonus', 2, condition='ahead_of_teammate')).total, 40)

    def test_driver_condition_not_met(self):
        score = self.play(Modifier('driver', 'conditional_bonus', condition='top5'), main='Driver C')

        self.assertEqual(score.breakdown['main_driver_points'], 8)
        self.assertEqual(score.breakdown['modifiers'][0]['delta'], 0)

    def test_team_conditional_bonus(self):
        self.assertEqual(self.play(Modifier('team', 'conditional_bonus', condition='both_top10')).breakdown['team_points'], 28)
        self.assertEqual(self.play(Modifier('team', 'conditional_bonus', condition='both_top5')).breakdown['team_points'], 23)
        self.assertEqual(self.play(Modifier('team', 'conditional_bonus', condition='one_last_place')).breakdown['team_points'], 28)

    def test_sponsors_reward_a_pointless_team(self):
        score = self.play(Modifier('team', 'conditional_bonus', condition='sponsors'), team='Team W')
        self.assertEqual(score.breakdown['team_points'], 5)

    def test_espionage_copies_other_team(self):
        score = self.play(Modifier('team', 'espionage', target_name='Team Y'))

        self.assertEqual(score.breakdown['team_points'], 43)
        self.assertEqual(score.breakdown['modifiers'][0]['delta'], 20)

    def test_undercut_moves_second_car_behind_first(self):
        score = self.play(Modifier('team', 'undercut'))

        # Driver C: P6 (8) reclassified P4 (12)
        self.assertEqual(score.breakdown['team_points'], 27)

    def test_podium_counts_team_cars(self):
        score = self.play(Modifier('team', 'podium'), team='Team Y')
        self.assertEqual(score.breakdown['team_points'], 43 + 16)


class ValidationTests(SimpleTestCase):

    def test_raw_lookup_agrees_with_base_points(self):
        round_results = results([
            DriverRow('Driver A', 'Team X', did_not_start=True),
            DriverRow('Driver B', 'Team Y', position=5, points=10),
        ])
        score = calculate_race_points(picks(), round_results)

        mismatches = find_mismatches(score.base_points, raw_points_lookup(picks(), round_results))

        self.assertEqual(mismatches, [])

    def test_reports_differing_slots(self):
        mismatches = find_mismatches(
            {'main_driver_points': 10, 'reserve_driver_points': 0, 'team_points': 5},
            {'main_driver_points': 12, 'reserve_driver_points': 0, 'team_points': 5},
        )
        self.assertEqual(len(mismatches), 1)
        self.assertIn('main_driver_points', mismatches[0])
