"""
Tests for results ingestion
"""

from unittest import mock

from django.test import SimpleTestCase, TestCase

from league.models import DriverResult, TeamResult
from league.processing.results import finish_points, parse_position, record_results
from league.tests.helpers import create_completed_race, create_race, create_season


class ParsePositionTests(SimpleTestCase):

    def test_numeric_positions(self):
        self.assertEqual(parse_position('3'), (3, {}))
        self.assertEqual(parse_position(7), (7, {}))
        self.assertEqual(parse_position('12.0'), (12, {}))

    def test_status_tokens(self):
        self.assertEqual(parse_position('DNF'), (None, {'did_not_finish': True}))
        self.assertEqual(parse_position('dns'), (None, {'did_not_start': True}))
        self.assertEqual(parse_position('DQ'), (None, {'disqualified': True}))

    def test_blank_and_garbage(self):
        self.assertEqual(parse_position(None), (None, {}))
        self.assertEqual(parse_position(''), (None, {}))
        with self.assertLogs('league.processing.results', level='WARNING'):
            self.assertEqual(parse_position('??'), (None, {}))


class FinishPointsTests(SimpleTestCase):

    def test_grand_prix_table(self):
        self.assertEqual(finish_points(1), 25)
        self.assertEqual(finish_points(10), 1)
        self.assertEqual(finish_points(11), 0)
        self.assertEqual(finish_points(None), 0)

    def test_sprint_table(self):
        self.assertEqual(finish_points(1, sprint=True), 8)
        self.assertEqual(finish_points(8, sprint=True), 1)
        self.assertEqual(finish_points(9, sprint=True), 0)


class RecordResultsTests(TestCase):

    def setUp(self):
        self.season = create_season(drivers=4, teams=2)
        self.race_rows = [
            {'driver_name': 'Max Verstappen', 'team_name': 'Red Bull Racing', 'position': '1'},
            {'driver_name': 'Yuki Tsunoda', 'team_name': 'Red Bull Racing', 'position': '4'},
            {'driver_name': 'Lando Norris', 'team_name': 'McLaren', 'position': '2', 'points': 19},
            {'driver_name': 'Oscar Piastri', 'team_name': 'McLaren', 'position': 'DNS'},
        ]

    def test_points_filled_from_table(self):
        race = create_race(self.season, 1)

        counts = record_results(race, self.race_rows)

        self.assertEqual(counts['race_rows'], 4)
        self.assertEqual(counts['team_rows'], 2)
        max_row = DriverResult.objects.get(race=race, driver_name='Max Verstappen')
        self.assertEqual(max_row.points, 25)
        self.assertEqual(DriverResult.objects.get(driver_name='Lando Norris').points, 19)

        piastri = DriverResult.objects.get(driver_name='Oscar Piastri')
        self.assertTrue(piastri.did_not_start)
        self.assertIsNone(piastri.position)
        self.assertEqual(piastri.points, 0)
        self.assertEqual(piastri.status_label, 'DNS')

    def test_team_aggregate_includes_sprint(self):
        race = create_race(self.season, 1, sprint=True)
        sprint_rows = [
            {'driver_name': 'Lando Norris', 'team_name': 'McLaren', 'position': 1},
            {'driver_name': 'Max Verstappen', 'team_name': 'Red Bull Racing', 'position': 2},
        ]

        record_results(race, self.race_rows, sprint_rows)

        red_bull = TeamResult.objects.get(race=race, team_name='Red Bull Racing')
        self.assertEqual(red_bull.race_points, 37)
        self.assertEqual(red_bull.sprint_points, 7)
        self.assertEqual(red_bull.total_points, 44)
        self.assertEqual(red_bull.position, 1)

        mclaren = TeamResult.objects.get(race=race, team_name='McLaren')
        self.assertEqual(mclaren.total_points, 27)
        self.assertEqual(mclaren.position, 2)
        self.assertTrue(race.has_results)

    def test_replaces_previous_rows(self):
        race = create_race(self.season, 1)
        record_results(race, self.race_rows)

        record_results(race, self.race_rows[:2])

        self.assertEqual(DriverResult.objects.filter(race=race).count(), 2)
        self.assertEqual(TeamResult.objects.filter(race=race).count(), 1)

    def test_duplicate_rows_keep_the_first(self):
        race = create_race(self.season, 1)
        rows = self.race_rows + [{'driver_name': 'Max Verstappen', 'team_name': 'Red Bull Racing', 'position': 9}]

        with self.assertLogs('league.processing.results', level='WARNING'):
            record_results(race, rows)

        self.assertEqual(DriverResult.objects.get(driver_name='Max Verstappen').position, 1)

    @mock.patch('league.processing.completion.on_round_completed')
    def test_completed_race_is_announced_again(self, mock_on_round_completed):
        """Late results for a completed round trigger a rescore"""
        race = create_completed_race(self.season, 1)

        with self.captureOnCommitCallbacks(execute=True):
            record_results(race, self.race_rows)

        mock_on_round_completed.assert_called_once()
        self.assertEqual(mock_on_round_completed.call_args[0][0].pk, race.pk)
        race.refresh_from_db()
        self.assertIsNotNone(race.results_updated_at)

    @mock.patch('league.processing.completion.on_round_completed')
    def test_open_race_is_not_announced(self, mock_on_round_completed):
        race = create_race(self.season, 1)

        with self.captureOnCommitCallbacks(execute=True):
            record_results(race, self.race_rows)

        mock_on_round_completed.assert_not_called()
