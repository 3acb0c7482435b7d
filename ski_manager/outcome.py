from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Mapping, Optional

import numpy as np

from ski_manager.config import get_config
from ski_manager.engine.constants import FATIGUE_RANGE, MORALE_RANGE
from ski_manager.engine.data_models import Athlete, Health, Pacing
from ski_manager.engine.telemetry import RaceSnapshot
from ski_manager.game_state import GameState, RaceResultEntry, RaceResultSummary, Standings
from ski_manager.market import build_transfer_candidates

# --- Configuration ---
POINTS_TABLE = tuple(get_config('outcome.points_table', [25, 18, 15, 12, 10, 8, 6, 4, 2, 1]))
MINIMUM_POINTS = get_config('outcome.minimum_points', 1)
BASE_RACE_FATIGUE = get_config('outcome.base_fatigue', 10)
PACING_FATIGUE = get_config('outcome.pacing_fatigue', {"aggressive": 8, "defensive": 3, "steady": 6})
MORALE_TIERS = get_config('outcome.morale', {"top3": 6, "top10": 3, "top20": 1, "other": -1, "unscored": -2})
SICK_FATIGUE_THRESHOLD = get_config('outcome.sick_fatigue_threshold', 96)

MIN_LEADER_SPEED = 0.1


def points_for_place(place: int) -> int:
    """Championship points for a zero-based finishing place; every finisher scores."""
    if place < len(POINTS_TABLE):
        return int(POINTS_TABLE[place])
    return int(MINIMUM_POINTS)


def morale_delta_for_place(place: Optional[int]) -> float:
    if place is None:
        return MORALE_TIERS["unscored"]
    if place < 3:
        return MORALE_TIERS["top3"]
    if place < 10:
        return MORALE_TIERS["top10"]
    if place < 20:
        return MORALE_TIERS["top20"]
    return MORALE_TIERS["other"]


def race_fatigue(pacing: Optional[Pacing]) -> float:
    key = pacing.key if pacing is not None else Pacing.STEADY.key
    return BASE_RACE_FATIGUE + PACING_FATIGUE.get(key, PACING_FATIGUE["steady"])


def rank_final_snapshot(snapshot: RaceSnapshot, athletes: Mapping[str, Athlete]) -> List[RaceResultEntry]:
    """
    Orders the final snapshot into results with elapsed times and points.

    Runners short of the leader get the leader's time plus the distance gap
    covered at the leader's average speed. Equal distances are ordered by
    athlete id.
    """
    ordered = sorted(snapshot.athletes, key=lambda a: (-a.distance, a.athlete_id))
    if not ordered:
        return []

    leader = ordered[0]
    leader_time = snapshot.t
    if leader.distance > 0 and leader_time > 0:
        leader_speed = leader.distance / leader_time
    else:
        leader_speed = 1.0
    leader_speed = max(MIN_LEADER_SPEED, leader_speed)

    results = []
    for place, runner in enumerate(ordered):
        gap = (leader.distance - runner.distance) / leader_speed
        athlete = athletes.get(runner.athlete_id)
        results.append(
            RaceResultEntry(
                athlete_id=runner.athlete_id,
                time=leader_time + gap,
                points=points_for_place(place),
                team_id=athlete.team_id if athlete else "",
            )
        )
    return results


def _apply_standings(standings: Standings, results: List[RaceResultEntry]) -> Standings:
    athlete_points = dict(standings.athletes)
    team_points = dict(standings.teams)
    for entry in results:
        athlete_points[entry.athlete_id] = athlete_points.get(entry.athlete_id, 0) + entry.points
        team_points[entry.team_id] = team_points.get(entry.team_id, 0) + entry.points
    return Standings(athletes=athlete_points, teams=team_points)


def _apply_race_impact(
    athletes: Dict[str, Athlete],
    lineup,
    placements: Mapping[str, int],
    pacing: Optional[Pacing],
) -> Dict[str, Athlete]:
    updated = dict(athletes)
    fatigue_gain = race_fatigue(pacing)
    for athlete_id in lineup:
        athlete = updated.get(athlete_id)
        if athlete is None:
            continue
        condition = athlete.state
        fatigue = float(np.clip(condition.fatigue + fatigue_gain, *FATIGUE_RANGE))
        morale = float(np.clip(condition.morale + morale_delta_for_place(placements.get(athlete_id)), *MORALE_RANGE))
        health = Health.SICK if fatigue > SICK_FATIGUE_THRESHOLD else condition.health
        updated[athlete_id] = replace(athlete, state=replace(condition, fatigue=fatigue, morale=morale, health=health))
    return updated


def finish_race(state: GameState, verbose: bool = False) -> GameState:
    """
    Commits the active race: standings, roster fatigue/morale, prize money
    and the archived result. Without an active race the state is returned as is.
    """
    active = state.active_race
    if active is None:
        return state
    if not active.snapshots:
        print(f"!!! WARNING: Active race {active.race_id} has no snapshots. Discarding it.")
        return replace(state, active_race=None)

    race = state.season_race(active.race_id)
    results = rank_final_snapshot(active.snapshots[-1], state.athletes)
    standings = _apply_standings(state.standings, results)

    player_team_id = state.resolved_player_team_id
    team = state.teams.get(player_team_id)
    lineup = active.lineup or (team.athletes if team else ())

    finance = state.finance
    podium = [entry for entry in results[:3] if entry.team_id == player_team_id and entry.athlete_id in lineup]
    if race is not None and podium:
        finance = finance.with_entry(state.current_week, race.prize_money, f"Prize money {race.course_id}")
        if verbose:
            print(f"  -> Podium for {player_team_id}: +{race.prize_money:.0f} prize money.")

    placements = {entry.athlete_id: place for place, entry in enumerate(results)}
    athletes = _apply_race_impact(state.athletes, lineup, placements, active.pacing)

    summary = RaceResultSummary(race_id=active.race_id, results=tuple(results), meta=active.meta())
    next_state = replace(
        state,
        athletes=athletes,
        finance=finance,
        standings=standings,
        past_results=state.past_results + (summary,),
        active_race=None,
    )

    if len(next_state.past_results) >= len(state.season_races):
        if verbose:
            print("  -> Season complete. Rebuilding the transfer list.")
        next_state = replace(next_state, transfer_list=build_transfer_candidates(next_state, player_team_id))

    if verbose and results:
        print(f"  -> {active.race_id} won by {results[0].athlete_id} in {results[0].time:.1f}s")
    return next_state
