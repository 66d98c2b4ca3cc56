"""
Tests for the round completion cascade.

Tests cover:
- Scoring, promotion and audit of every member's selection
- Re-running on unchanged data (no writes) and on corrected results (rescore)
- Aborts on incomplete data or a race that is not completed
- Stale race references, per-member failure isolation
- Usage cycles after auto-assignment followed by completion
"""

from datetime import timedelta
from unittest import mock

from django.test import TestCase, override_settings
from django.utils import timezone

from league.models import (
    LeagueLeaderboard,
    PointsUpdateLog,
    Race,
    RaceSelection,
    RoundModifier,
    UsedSelection,
)
from league.processing.auto_assignment import auto_assign_for_race
from league.processing.completion import handle_round_completed, on_round_completed
from league.processing.cycles import find_cycle_anomalies
from league.processing.exceptions import ReferenceDriftWarning
from league.processing.results import record_results
from league.processing.scoring import Modifier, calculate_race_points as real_calculate_race_points
from league.tests.helpers import (
    create_completed_race,
    create_league,
    create_locked_race,
    create_season,
    create_user,
    driver_name,
    team_name,
)

RACE_ROWS = [
    {'driver_name': driver_name(1), 'team_name': team_name(1), 'position': 1},
    {'driver_name': driver_name(3), 'team_name': team_name(2), 'position': 2},
    {'driver_name': driver_name(2), 'team_name': team_name(1), 'position': 3},
    {'driver_name': driver_name(4), 'team_name': team_name(2), 'position': 'DNS'},
]


class RoundCompletionTests(TestCase):

    def setUp(self):
        self.season = create_season(drivers=4, teams=2)
        self.alice = create_user('alice')
        self.bob = create_user('bob')
        self.league = create_league(self.season, self.alice, members=[self.bob])
        self.race = create_completed_race(self.season, 1)
        record_results(self.race, RACE_ROWS)

        self.alice_selection = self.pick(self.alice, driver_name(1), driver_name(3), team_name(2))
        self.bob_selection = self.pick(self.bob, driver_name(4), driver_name(2), team_name(1))

    def pick(self, user, main, reserve, team, **kwargs):
        fields = {
            'user': user,
            'league': self.league,
            'race': self.race,
            'round': 1,
            'main_driver': main,
            'reserve_driver': reserve,
            'team': team,
            'status': RaceSelection.STATUS_USER_SUBMITTED,
        }
        fields.update(kwargs)
        return RaceSelection.objects.create(**fields)

    def test_scores_every_member(self):
        summary = on_round_completed(self.race)

        self.assertEqual(summary['status'], 'complete')
        self.assertEqual(summary['leagues_processed'], 1)
        self.assertEqual(summary['selections_updated'], 2)
        self.assertEqual(summary['errors'], 0)

        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.points, 25 + 18)
        self.assertEqual(self.alice_selection.status, RaceSelection.STATUS_AUTO_ASSIGNED)

        # Bob's main did not start: the reserve's Grand Prix points stand in
        self.bob_selection.refresh_from_db()
        self.assertEqual(self.bob_selection.points, 15 + 40)
        self.assertEqual(self.bob_selection.point_breakdown['substituted_by'], driver_name(2))

    def test_audit_log_and_cycles(self):
        on_round_completed(self.race)

        log = PointsUpdateLog.objects.get(user=self.alice, league=self.league)
        self.assertEqual(log.update_reason, PointsUpdateLog.REASON_INITIAL)
        self.assertEqual(log.previous_points, 0)
        self.assertEqual(log.points, 43)
        self.assertEqual(log.selection, self.alice_selection)

        state = UsedSelection.objects.get(user=self.alice, league=self.league)
        self.assertEqual(state.driver_cycles, [[driver_name(1), driver_name(3)]])
        self.assertEqual(state.team_cycles, [[team_name(2)]])

    def test_standings_rebuilt(self):
        on_round_completed(self.race)

        leaderboard = LeagueLeaderboard.objects.get(league=self.league)
        self.assertEqual(leaderboard.driver_standings[0]['username'], 'alice')
        self.assertEqual(leaderboard.driver_standings[0]['total_points'], 25)
        self.assertEqual(leaderboard.constructor_standings[0]['username'], 'bob')
        self.assertEqual(leaderboard.constructor_standings[0]['total_points'], 40)

    def test_second_run_changes_nothing(self):
        on_round_completed(self.race)
        state_before = UsedSelection.objects.get(user=self.alice, league=self.league)
        updated_before = RaceSelection.objects.get(pk=self.alice_selection.pk).updated_at

        summary = on_round_completed(self.race)

        self.assertEqual(summary['selections_updated'], 0)
        self.assertEqual(summary['selections_unchanged'], 2)
        self.assertEqual(PointsUpdateLog.objects.count(), 2)
        self.assertEqual(RaceSelection.objects.get(pk=self.alice_selection.pk).updated_at, updated_before)

        state_after = UsedSelection.objects.get(user=self.alice, league=self.league)
        self.assertEqual(state_after.driver_cycles, state_before.driver_cycles)
        self.assertEqual(state_after.team_cycles, state_before.team_cycles)

    def test_corrected_results_rescore(self):
        on_round_completed(self.race)
        corrected = [dict(row) for row in RACE_ROWS]
        corrected[0]['position'] = 'DSQ'
        record_results(self.race, corrected)

        summary = on_round_completed(self.race)

        self.assertEqual(summary['selections_updated'], 2)
        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.points, 0 + 18)
        log = PointsUpdateLog.objects.filter(user=self.alice).order_by('-pk').first()
        self.assertEqual(log.update_reason, PointsUpdateLog.REASON_RESCORE)
        self.assertEqual(log.previous_points, 43)

    def test_missing_team_results_abort(self):
        self.race.team_results.all().delete()

        with self.assertLogs('league.processing.completion', level='ERROR'):
            summary = on_round_completed(self.race)

        self.assertEqual(summary['status'], 'aborted')
        self.assertIn('team results', summary['reason'])
        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.status, RaceSelection.STATUS_USER_SUBMITTED)
        self.assertFalse(LeagueLeaderboard.objects.exists())

    def test_race_not_completed_aborts(self):
        Race.objects.filter(pk=self.race.pk).update(status=Race.STATUS_IN_PROGRESS)

        summary = on_round_completed(self.race)

        self.assertEqual(summary['status'], 'aborted')
        self.assertEqual(PointsUpdateLog.objects.count(), 0)

    def test_incomplete_selection_skipped_but_standings_rebuilt(self):
        RaceSelection.objects.filter(pk=self.bob_selection.pk).update(team='')

        summary = on_round_completed(self.race)

        self.assertEqual(summary['selections_skipped'], 1)
        self.assertEqual(summary['selections_updated'], 1)
        self.assertTrue(LeagueLeaderboard.objects.filter(league=self.league).exists())

    def test_completed_leagues_are_ignored(self):
        self.league.season_status = self.league.STATUS_COMPLETED
        self.league.save()

        summary = on_round_completed(self.race)

        self.assertEqual(summary['leagues_processed'], 0)

    def test_stale_race_reference_is_repointed(self):
        RaceSelection.objects.filter(pk=self.alice_selection.pk).update(race=None)
        duplicate = self.pick(self.alice, driver_name(2), driver_name(4), team_name(1), round=99)

        with self.assertWarns(ReferenceDriftWarning):
            on_round_completed(self.race)

        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.race, self.race)
        self.assertEqual(self.alice_selection.points, 43)
        self.assertFalse(RaceSelection.objects.filter(pk=duplicate.pk).exists())

    def test_one_member_failing_does_not_stop_the_others(self):
        bob_id = self.bob.pk

        def flaky(selection, results, modifiers=None):
            if selection.user_id == bob_id:
                raise RuntimeError('boom')
            return real_calculate_race_points(selection, results, modifiers)

        with mock.patch('league.processing.completion.calculate_race_points', side_effect=flaky):
            with self.assertLogs('league.processing.completion', level='ERROR'):
                summary = on_round_completed(self.race)

        self.assertEqual(summary['errors'], 1)
        self.assertEqual(summary['selections_updated'], 1)
        self.bob_selection.refresh_from_db()
        self.assertEqual(self.bob_selection.status, RaceSelection.STATUS_USER_SUBMITTED)
        self.assertFalse(UsedSelection.objects.filter(user=self.bob).exists())

    @override_settings(CARD_EFFECTS_FROM_SEASON=2025)
    def test_round_modifier_rows_are_applied(self):
        RoundModifier.objects.create(
            user=self.alice, league=self.league, round=1,
            target=RoundModifier.TARGET_DRIVER, effect_type=RoundModifier.EFFECT_FLAT_BONUS, effect_value=5,
        )

        on_round_completed(self.race)

        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.points, 48)
        self.assertEqual(self.alice_selection.point_breakdown['base_points']['total'], 43)

    @override_settings(CARD_EFFECTS_FROM_SEASON=2025)
    def test_mirror_card_copies_other_members_drivers(self):
        RoundModifier.objects.create(
            user=self.alice, league=self.league, round=1, target=RoundModifier.TARGET_DRIVER,
            effect_type=RoundModifier.EFFECT_MIRROR, target_user=self.bob,
        )

        on_round_completed(self.race)

        # Bob's driver slots (15 + 0) with Alice's own team (18)
        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.points, 33)
        self.assertEqual(self.alice_selection.point_breakdown['modifiers'][0]['target'], 'bob')

    @override_settings(CARD_EFFECTS_FROM_SEASON=2025)
    def test_custom_modifier_provider(self):
        provider = mock.Mock(return_value=[Modifier('driver', 'multiply')])

        on_round_completed(self.race, modifier_provider=provider)

        self.assertEqual(provider.call_count, 2)
        self.alice_selection.refresh_from_db()
        self.assertEqual(self.alice_selection.points, 50 + 18)

    def test_receiver_swallows_crashes(self):
        with mock.patch('league.processing.completion.on_round_completed', side_effect=RuntimeError('db down')):
            with self.assertLogs('league.processing.completion', level='ERROR'):
                self.assertIsNone(handle_round_completed(Race, race=self.race))


class AutoAssignThenCompleteTests(TestCase):
    """Auto-assignment and completion record the same round twice"""

    def setUp(self):
        self.season = create_season(drivers=2, teams=1)
        self.alice = create_user('alice')
        self.league = create_league(self.season, self.alice)

    def test_closing_picks_do_not_leak_into_the_new_cycle(self):
        race = create_locked_race(self.season, 1)
        auto_assign_for_race(race)

        state = UsedSelection.objects.get(user=self.alice, league=self.league)
        self.assertEqual(state.driver_cycles, [[driver_name(1), driver_name(2)], []])

        race.qualifying_start = timezone.now() - timedelta(days=3)
        race.race_start = timezone.now() - timedelta(days=2)
        race.save()
        self.assertEqual(race.status, Race.STATUS_COMPLETED)
        record_results(race, [
            {'driver_name': driver_name(1), 'team_name': team_name(1), 'position': 1},
            {'driver_name': driver_name(2), 'team_name': team_name(1), 'position': 2},
        ])

        summary = on_round_completed(race)

        self.assertEqual(summary['selections_updated'], 1)
        state.refresh_from_db()
        self.assertEqual(state.driver_cycles, [[driver_name(1), driver_name(2)], []])
        self.assertEqual(state.team_cycles, [[team_name(1)], []])
        self.assertEqual(find_cycle_anomalies(state, 2, 1), [])

        log = PointsUpdateLog.objects.get(user=self.alice)
        self.assertEqual(log.update_reason, PointsUpdateLog.REASON_INITIAL)
        self.assertEqual(log.points, 25 + 43)
