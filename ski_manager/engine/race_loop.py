from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence

from .data_models import (
    Athlete,
    AthleteRuntime,
    EquipmentInventory,
    Pacing,
    RaceConditions,
    RaceCourse,
    RacePrep,
    RaceStartState,
    Role,
    Tactic,
)
from .gear import resolve_gear
from .grouping import Grouping, compute_groups
from .physics import DEFAULT_BALANCE, BalanceTable, advance_athlete
from .telemetry import RaceSnapshot, SnapshotAthlete, SnapshotTimeline

# Headroom over a race run entirely at the speed floor
TICK_BUDGET_MARGIN = 1.1
TICK_BUDGET_SLACK = 100


@dataclass(frozen=True)
class RaceInput:
    course: RaceCourse
    athletes: Sequence[Athlete]
    prep: Optional[RacePrep] = None
    conditions: Optional[RaceConditions] = None
    equipment: Optional[EquipmentInventory] = None


def _unique_athletes(athletes: Iterable[Optional[Athlete]]) -> List[Athlete]:
    seen = set()
    unique: List[Athlete] = []
    for athlete in athletes:
        if athlete is None or athlete.athlete_id in seen:
            continue
        seen.add(athlete.athlete_id)
        unique.append(athlete)
    return unique


class RaceSimulator:
    """Fixed-step race loop combining the grouping engine with the athlete advancer."""

    def __init__(
        self,
        race_input: RaceInput,
        start_state: Optional[Sequence[RaceStartState]] = None,
        start_time: float = 0.0,
        balance: BalanceTable = DEFAULT_BALANCE,
        timeline: Optional[SnapshotTimeline] = None,
        verbose: bool = False,
    ) -> None:
        self.course = race_input.course
        self.total_distance = max(0.0, race_input.course.total_distance)
        self.balance = balance
        self.dt = balance.tick_seconds
        self.timeline = timeline if timeline is not None else SnapshotTimeline()
        self.verbose = verbose
        self.tick_index = 0
        self.time_elapsed = start_time

        prep = race_input.prep
        self.pacing: Pacing = prep.pacing if prep else Pacing.STEADY
        self.tactic: Tactic = prep.tactic if prep else Tactic.PROTECT_LEADER
        self.orders = prep.orders if prep else None
        self.role_map: Dict[str, Role] = dict(prep.roles) if prep else {}
        self.conditions = race_input.conditions
        self.gear = resolve_gear(
            race_input.equipment,
            prep.ski_choice if prep else None,
            prep.wax_choice if prep else None,
        )

        seeds = {entry.athlete_id: entry for entry in start_state or ()}
        offsets = balance.lane_offsets
        self._states: List[AthleteRuntime] = []
        for idx, athlete in enumerate(_unique_athletes(race_input.athletes)):
            seed = seeds.get(athlete.athlete_id)
            if seed is not None:
                state = AthleteRuntime(
                    athlete=athlete,
                    distance=min(max(0.0, seed.distance), self.total_distance),
                    energy=max(0.0, min(100.0, seed.energy)),
                    lane_offset=seed.lane_offset,
                )
            else:
                state = AthleteRuntime(athlete=athlete, lane_offset=offsets[idx % len(offsets)])
            self._states.append(state)

    @property
    def states(self) -> Sequence[AthleteRuntime]:
        return self._states

    def is_finished(self) -> bool:
        return all(state.distance >= self.total_distance for state in self._states)

    def tick(self) -> RaceSnapshot:
        """Snapshot the current instant, then advance every athlete by one step."""
        groups = self._regroup()
        snapshot = self._snapshot(groups)

        self._states = [
            advance_athlete(
                state,
                self.dt,
                self.course,
                self.total_distance,
                self.tactic,
                self.pacing,
                self.gear,
                self.conditions,
                groups,
                self.role_map,
                self.orders,
                self.balance,
            )
            for state in self._states
        ]
        self.time_elapsed += self.dt
        self.tick_index += 1
        return snapshot

    def tick_budget(self) -> int:
        """
        Tick limit for this race: the configured cap, raised so that the
        furthest-back athlete can still finish moving at the speed floor.
        """
        remaining = max((self.total_distance - state.distance for state in self._states), default=0.0)
        floor_step = self.balance.speed_floor * self.dt
        if remaining <= 0 or floor_step <= 0:
            return self.balance.max_ticks
        needed = math.ceil(remaining / floor_step * TICK_BUDGET_MARGIN) + TICK_BUDGET_SLACK
        return max(self.balance.max_ticks, needed)

    def run_until_finished(self, max_ticks: Optional[int] = None) -> List[RaceSnapshot]:
        limit = self.tick_budget() if max_ticks is None else max_ticks
        if self.verbose:
            print(f"\n--- Simulating {self.course.name} ({self.total_distance:.0f}m, {len(self._states)} athletes) ---")

        while not self.is_finished() and self.tick_index < limit:
            self.tick()

        if not self.is_finished():
            print(f"!!! WARNING: {self.course.name} exceeded max ticks ({limit}). Force finishing.")

        # Closing frame so the last snapshot carries the finishing state
        self._snapshot(self._regroup())

        if self.verbose:
            print(f"     ...{len(self.timeline)} snapshots over {self.time_elapsed:.0f}s of race time.")
        return list(self.timeline.export())

    # --- Helpers ---------------------------------------------------------

    def _regroup(self) -> Grouping:
        groups = compute_groups(self._states, self.balance.group_gap, self.balance.lane_offsets)
        self._states = [replace(state, lane_offset=groups.lanes[state.athlete_id]) for state in self._states]
        return groups

    def _snapshot(self, groups: Grouping) -> RaceSnapshot:
        snapshot = RaceSnapshot(
            t=self.time_elapsed,
            athletes=tuple(
                SnapshotAthlete(
                    athlete_id=state.athlete_id,
                    distance=state.distance,
                    lane_offset=state.lane_offset,
                    energy=state.energy,
                    effort=state.effort,
                    group_id=groups.group_of.get(state.athlete_id),
                )
                for state in self._states
            ),
        )
        self.timeline.record(snapshot)
        return snapshot


def simulate_race(race_input: RaceInput, verbose: bool = False) -> List[RaceSnapshot]:
    """Runs a race from the gun and returns every snapshot in time order."""
    return RaceSimulator(race_input, verbose=verbose).run_until_finished()


def continue_race(
    race_input: RaceInput,
    start_state: Sequence[RaceStartState],
    start_time: float,
    verbose: bool = False,
) -> List[RaceSnapshot]:
    """Resumes a race from a mid-race state; the first snapshot is at start_time."""
    simulator = RaceSimulator(race_input, start_state=start_state, start_time=start_time, verbose=verbose)
    return simulator.run_until_finished()
