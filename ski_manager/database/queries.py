from ski_manager.database.connection import get_db_connection
from ski_manager.game_state import GameState, RaceResultSummary, to_plain
from typing import Optional, Dict, Any, List
import psycopg2.extras as pg_extras

GAME_SAVES_TABLE = "ski.game_saves"
RACE_RESULTS_TABLE = "ski.race_results"

# --- Save Games ---

def save_game_state(slot: str, state: GameState) -> bool:
    """
    Upserts the game state into its save slot.
    Race snapshots are not persisted; an in-progress race is dropped.

    Returns:
        bool: True on success, False on any database error.
    """
    conn = None
    try:
        conn = get_db_connection()
        if conn is None:
            return False
        with conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO {GAME_SAVES_TABLE} (slot, player_team_id, current_week, payload)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (slot) DO UPDATE
                SET player_team_id = EXCLUDED.player_team_id,
                    current_week = EXCLUDED.current_week,
                    payload = EXCLUDED.payload,
                    updated_at = NOW();
                """,
                (slot, state.player_team_id, state.current_week, pg_extras.Json(state.to_dict()))
            )
        conn.commit()
        return True
    except Exception as e:
        if conn:
            conn.rollback()
        print(f"Error saving game state to slot '{slot}': {e}")
        return False
    finally:
        if conn:
            conn.close()

def load_game_state(slot: str) -> Optional[GameState]:
    """
    Loads the game state stored in a save slot, or None if it is empty.
    """
    conn = None
    state = None
    try:
        conn = get_db_connection()
        if conn is None:
            return None
        with conn.cursor() as cur:
            cur.execute(
                f"SELECT payload FROM {GAME_SAVES_TABLE} WHERE slot = %s;",
                (slot,)
            )
            row = cur.fetchone()
            if row:
                state = GameState.from_dict(row[0])
    except Exception as e:
        print(f"Error loading game state from slot '{slot}': {e}")
    finally:
        if conn:
            conn.close()
    return state

def delete_game_state(slot: str) -> bool:
    conn = None
    try:
        conn = get_db_connection()
        if conn is None:
            return False
        with conn.cursor() as cur:
            cur.execute(f"DELETE FROM {GAME_SAVES_TABLE} WHERE slot = %s;", (slot,))
            deleted = cur.rowcount > 0
        conn.commit()
        return deleted
    except Exception as e:
        if conn:
            conn.rollback()
        print(f"Error deleting save slot '{slot}': {e}")
        return False
    finally:
        if conn:
            conn.close()

# --- Race Results ---

def record_race_results(save_slot: str, summary: RaceResultSummary) -> bool:
    """
    Writes one row per finisher for a completed race. Re-recording the same
    race overwrites the earlier rows.
    """
    if not summary.results:
        return True

    meta = pg_extras.Json(to_plain(summary.meta))
    rows = [
        (save_slot, summary.race_id, place + 1, entry.athlete_id, entry.team_id, entry.time, entry.points, meta)
        for place, entry in enumerate(summary.results)
    ]

    conn = None
    try:
        conn = get_db_connection()
        if conn is None:
            return False
        with conn.cursor() as cur:
            pg_extras.execute_batch(
                cur,
                f"""
                INSERT INTO {RACE_RESULTS_TABLE}
                    (save_slot, race_id, place, athlete_id, team_id, finish_time, points, meta)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (save_slot, race_id, athlete_id) DO UPDATE
                SET place = EXCLUDED.place,
                    team_id = EXCLUDED.team_id,
                    finish_time = EXCLUDED.finish_time,
                    points = EXCLUDED.points,
                    meta = EXCLUDED.meta,
                    recorded_at = NOW();
                """,
                rows
            )
        conn.commit()
        return True
    except Exception as e:
        if conn:
            conn.rollback()
        print(f"Error recording results for race {summary.race_id} (slot '{save_slot}'): {e}")
        return False
    finally:
        if conn:
            conn.close()

def get_race_history(save_slot: str, race_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Fetches recorded results for a save slot, optionally for a single race.

    Returns:
        list: One dict per result row ordered by race and place.
              Empty on error or if nothing was recorded.
    """
    conn = None
    history = []
    try:
        conn = get_db_connection()
        if conn is None:
            return []
        with conn.cursor() as cur:
            sql = f"""
                SELECT race_id, place, athlete_id, team_id, finish_time, points, recorded_at
                FROM {RACE_RESULTS_TABLE}
                WHERE save_slot = %s
            """
            params = [save_slot]
            if race_id:
                sql += " AND race_id = %s"
                params.append(race_id)
            sql += " ORDER BY race_id, place;"

            cur.execute(sql, params)
            for row in cur.fetchall():
                history.append({
                    "race_id": row[0],
                    "place": row[1],
                    "athlete_id": row[2],
                    "team_id": row[3],
                    "time": row[4],
                    "points": row[5],
                    "recorded_at": row[6],
                })
    except Exception as e:
        print(f"Error fetching race history for slot '{save_slot}': {e}")
    finally:
        if conn:
            conn.close()
    return history
