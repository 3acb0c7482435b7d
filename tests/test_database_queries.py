import unittest
from unittest.mock import MagicMock, patch

from ski_manager.database import queries
from ski_manager.engine import Pacing
from ski_manager.game_state import FinanceState, GameState, RaceMeta, RaceResultEntry, RaceResultSummary, Team


def _state() -> GameState:
    return GameState(
        player_team_id="team-a",
        teams={"team-a": Team("team-a", "Alpha", 1000)},
        athletes={},
        finance=FinanceState(balance=5000, weekly_income=100),
        current_week=4,
    )


def _fake_connection(fetchone=None, fetchall=None, rowcount=0):
    fake_cursor = MagicMock()
    fake_cursor.__enter__.return_value = fake_cursor
    fake_cursor.fetchone.return_value = fetchone
    fake_cursor.fetchall.return_value = fetchall or []
    fake_cursor.rowcount = rowcount

    fake_conn = MagicMock()
    fake_conn.cursor.return_value = fake_cursor
    return fake_conn, fake_cursor


class SaveGameStateTests(unittest.TestCase):
    def test_returns_false_without_connection(self):
        with patch.object(queries, "get_db_connection", return_value=None):
            self.assertFalse(queries.save_game_state("slot-1", _state()))

    def test_upserts_payload_and_commits(self):
        fake_conn, fake_cursor = _fake_connection()
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            self.assertTrue(queries.save_game_state("slot-1", _state()))

        params = fake_cursor.execute.call_args[0][1]
        self.assertEqual(params[:3], ("slot-1", "team-a", 4))
        self.assertEqual(params[3].adapted["finance"]["balance"], 5000)
        self.assertNotIn("active_race", params[3].adapted)
        fake_conn.commit.assert_called_once()
        fake_conn.close.assert_called_once()

    def test_rolls_back_on_error(self):
        fake_conn, fake_cursor = _fake_connection()
        fake_cursor.execute.side_effect = RuntimeError("boom")
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            self.assertFalse(queries.save_game_state("slot-1", _state()))

        fake_conn.rollback.assert_called_once()
        fake_conn.commit.assert_not_called()
        fake_conn.close.assert_called_once()


class LoadGameStateTests(unittest.TestCase):
    def test_returns_none_for_empty_slot(self):
        fake_conn, _ = _fake_connection(fetchone=None)
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            self.assertIsNone(queries.load_game_state("slot-1"))
        fake_conn.close.assert_called_once()

    def test_rebuilds_state_from_payload(self):
        payload = _state().to_dict()
        fake_conn, _ = _fake_connection(fetchone=(payload,))
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            state = queries.load_game_state("slot-1")

        self.assertEqual(state.player_team_id, "team-a")
        self.assertEqual(state.current_week, 4)
        self.assertEqual(state.finance.balance, 5000)
        self.assertEqual(state.teams["team-a"].name, "Alpha")


class DeleteGameStateTests(unittest.TestCase):
    def test_reports_whether_a_row_was_deleted(self):
        fake_conn, _ = _fake_connection(rowcount=1)
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            self.assertTrue(queries.delete_game_state("slot-1"))

        fake_conn, _ = _fake_connection(rowcount=0)
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            self.assertFalse(queries.delete_game_state("slot-1"))


class RaceResultsTests(unittest.TestCase):
    def _summary(self):
        return RaceResultSummary(
            race_id="race-1",
            results=(
                RaceResultEntry("a1", 3600.0, 25, "team-a"),
                RaceResultEntry("b1", 3610.5, 18, "team-b"),
            ),
            meta=RaceMeta(lineup=("a1",), pacing=Pacing.STEADY),
        )

    def test_empty_results_need_no_connection(self):
        with patch.object(queries, "get_db_connection") as connect:
            self.assertTrue(queries.record_race_results("slot-1", RaceResultSummary("race-1", ())))
        connect.assert_not_called()

    def test_writes_one_row_per_finisher(self):
        fake_conn, _ = _fake_connection()
        with patch.object(queries, "get_db_connection", return_value=fake_conn), patch.object(
            queries.pg_extras, "execute_batch"
        ) as execute_batch:
            self.assertTrue(queries.record_race_results("slot-1", self._summary()))

        rows = execute_batch.call_args[0][2]
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0][:7], ("slot-1", "race-1", 1, "a1", "team-a", 3600.0, 25))
        self.assertEqual(rows[1][2], 2)
        self.assertEqual(rows[0][7].adapted["pacing"], "STEADY")
        fake_conn.commit.assert_called_once()

    def test_history_rows_are_normalised(self):
        fake_conn, fake_cursor = _fake_connection(
            fetchall=[("race-1", 1, "a1", "team-a", 3600.0, 25, None)]
        )
        with patch.object(queries, "get_db_connection", return_value=fake_conn):
            history = queries.get_race_history("slot-1", race_id="race-1")

        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]["athlete_id"], "a1")
        self.assertEqual(history[0]["time"], 3600.0)
        self.assertEqual(fake_cursor.execute.call_args[0][1], ["slot-1", "race-1"])

    def test_history_is_empty_on_error(self):
        with patch.object(queries, "get_db_connection", side_effect=RuntimeError("down")):
            self.assertEqual(queries.get_race_history("slot-1"), [])


if __name__ == "__main__":
    unittest.main()
