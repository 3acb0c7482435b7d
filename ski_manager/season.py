from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from ski_manager.config import get_config
from ski_manager.engine.constants import FATIGUE_RANGE, FORM_RANGE, MORALE_RANGE
from ski_manager.engine.data_models import Athlete, Health, RaceConditions, RaceCourse, RacePrep, Role
from ski_manager.engine.race_loop import RaceInput, simulate_race
from ski_manager.game_state import (
    ActiveRace,
    GameState,
    StaffRole,
    TeamFormation,
    TrainingFocus,
    TrainingIntensity,
    WeeklyTrainingPlan,
)
from ski_manager.reference_data import DEFAULT_REFERENCE_REGISTRY

# --- Configuration ---
INTENSITY_EFFECTS = get_config('training.intensity', {
    "easy": {"fatigue": 3, "form": 1},
    "medium": {"fatigue": 6, "form": 0},
    "hard": {"fatigue": 10, "form": -2},
    "rest": {"fatigue": -8, "form": 2},
})
STAT_GAIN_PER_SESSION = get_config('training.stat_gain_per_session', 0.2)
HEALTHY_BELOW_FATIGUE = get_config('recovery.healthy_below_fatigue', 40)
SICK_ABOVE_FATIGUE = get_config('recovery.sick_above_fatigue', 95)
SICK_MORALE_PENALTY = get_config('recovery.sick_morale_penalty', 5)
RECOVER_ABOVE_FATIGUE = get_config('recovery.recover_above_fatigue', 20)
WEEKLY_RECOVERY = get_config('recovery.weekly_recovery', 5)

FOCUS_STAT = {
    TrainingFocus.ENDURANCE: "endurance",
    TrainingFocus.CLIMB: "climbing",
    TrainingFocus.SPEED: "sprint",
}

LINEUP_SIZE = 8
FORMATION_MATCH = {"morale": 4, "form": 1}
FORMATION_MISMATCH = {"morale": -2, "form": -1}


# --- Training ---

def _staff_skill(state: GameState, role: StaffRole) -> Optional[float]:
    member = next((s for s in state.staff if s.role is role), None)
    return member.skill if member else None


def coach_bonus(state: GameState) -> float:
    skill = _staff_skill(state, StaffRole.COACH)
    base = 1 + skill / 200 if skill is not None else 1.0
    return base + (state.facilities.training_center or 1) * 0.05


def recovery_bonus(state: GameState) -> float:
    skill = _staff_skill(state, StaffRole.PHYSIO)
    base = 1 + skill / 300 if skill is not None else 1.0
    return base + (state.facilities.recovery_center or 1) * 0.05


def _capped_gain(current: float, gain: float, potential: float) -> float:
    if gain <= 0:
        return current
    return float(np.clip(current + gain, 0, max(current, potential)))


def _apply_plan(athlete: Athlete, plan: WeeklyTrainingPlan, coach: float, recovery: float) -> Athlete:
    fatigue_gain = 0.0
    form_delta = 0.0
    gains = {"endurance": 0.0, "climbing": 0.0, "sprint": 0.0}

    for session in plan.sessions:
        effect = INTENSITY_EFFECTS[session.intensity.key]
        if session.intensity is TrainingIntensity.REST:
            fatigue_gain += effect["fatigue"] * recovery
        else:
            fatigue_gain += effect["fatigue"]
            gains[FOCUS_STAT[session.focus]] += STAT_GAIN_PER_SESSION * coach
        form_delta += effect["form"]

    stats = athlete.base_stats
    new_stats = replace(
        stats,
        endurance=_capped_gain(stats.endurance, gains["endurance"], athlete.potential),
        climbing=_capped_gain(stats.climbing, gains["climbing"], athlete.potential),
        sprint=_capped_gain(stats.sprint, gains["sprint"], athlete.potential),
    )
    new_condition = replace(
        athlete.state,
        fatigue=float(np.clip(athlete.state.fatigue + fatigue_gain, *FATIGUE_RANGE)),
        form=float(np.clip(athlete.state.form + form_delta, *FORM_RANGE)),
    )
    return replace(athlete, base_stats=new_stats, state=new_condition)


def apply_weekly_training(state: GameState) -> GameState:
    """Runs every athlete's weekly plan; athletes without a plan are untouched."""
    plans = {plan.athlete_id: plan for plan in state.training_plans}
    if not plans:
        return state
    coach = coach_bonus(state)
    recovery = recovery_bonus(state)

    athletes = dict(state.athletes)
    for athlete_id, athlete in state.athletes.items():
        plan = plans.get(athlete_id)
        if plan is None:
            continue
        athletes[athlete_id] = _apply_plan(athlete, plan, coach, recovery)
    return replace(state, athletes=athletes)


# --- Finance & health ---

def apply_weekly_finance(state: GameState) -> GameState:
    """Books one week of income against the salary bill of every athlete."""
    salary = sum(athlete.contract.salary_per_week for athlete in state.athletes.values())
    delta = state.finance.weekly_income - salary
    finance = replace(state.finance.with_entry(state.current_week, delta, "Weekly finances"), weekly_expenses=salary)
    return replace(state, finance=finance)


def _weekly_health(athlete: Athlete) -> Athlete:
    condition = athlete.state
    health = condition.health
    fatigue = condition.fatigue
    morale = condition.morale

    if fatigue < HEALTHY_BELOW_FATIGUE and health is not Health.OK:
        health = Health.OK
    if fatigue > SICK_ABOVE_FATIGUE:
        health = Health.SICK
        morale = float(np.clip(morale - SICK_MORALE_PENALTY, *MORALE_RANGE))
    if fatigue > RECOVER_ABOVE_FATIGUE:
        fatigue = max(0.0, fatigue - WEEKLY_RECOVERY)

    return replace(athlete, state=replace(condition, health=health, fatigue=fatigue, morale=morale))


def apply_fatigue_health(state: GameState) -> GameState:
    return replace(state, athletes={k: _weekly_health(a) for k, a in state.athletes.items()})


def advance_week(state: GameState) -> GameState:
    next_state = apply_weekly_training(state)
    next_state = apply_weekly_finance(next_state)
    next_state = apply_fatigue_health(next_state)
    return replace(next_state, current_week=next_state.current_week + 1)


# --- Race day ---

def _lineup_score(athlete: Athlete) -> float:
    stats = athlete.base_stats
    return (
        stats.endurance * 0.35
        + stats.climbing * 0.25
        + stats.flat * 0.2
        + stats.sprint * 0.1
        + (20 - athlete.state.fatigue) * 0.1
    )


def pick_top_lineup(athletes: Sequence[Athlete], limit: int = LINEUP_SIZE) -> List[str]:
    ranked = sorted(athletes, key=_lineup_score, reverse=True)
    return [athlete.athlete_id for athlete in ranked[:limit]]


def start_race(
    state: GameState,
    race_id: str,
    courses: Optional[Mapping[str, RaceCourse]] = None,
    conditions: Optional[Mapping[str, RaceConditions]] = None,
    verbose: bool = False,
) -> GameState:
    """
    Simulates a season race and parks the snapshots on the state as the
    active race. Unknown races or courses leave the state unchanged.
    """
    courses = courses if courses is not None else DEFAULT_REFERENCE_REGISTRY.courses()
    conditions = conditions if conditions is not None else DEFAULT_REFERENCE_REGISTRY.conditions()

    race = state.season_race(race_id)
    if race is None:
        print(f"!!! WARNING: Race {race_id} is not on the calendar.")
        return state
    course = courses.get(race.course_id)
    if course is None:
        print(f"!!! WARNING: Course {race.course_id} for {race_id} is unknown.")
        return state

    player_team_id = state.resolved_player_team_id
    prep = state.race_prep if state.race_prep and state.race_prep.race_id == race_id else None
    if prep and prep.lineup:
        lineup = list(prep.lineup)
    else:
        lineup = pick_top_lineup(state.team_athletes(player_team_id))
    race_conditions = (prep.conditions if prep else None) or conditions.get(course.course_id)

    # The whole field races so results and standings cover everyone
    player_lineup = [state.athletes[a] for a in lineup if a in state.athletes]
    runners = player_lineup + list(state.athletes.values())

    snapshots = simulate_race(
        RaceInput(course=course, athletes=runners, prep=prep, conditions=race_conditions, equipment=state.equipment),
        verbose=verbose,
    )

    active = ActiveRace(
        race_id=race_id,
        course_id=course.course_id,
        snapshots=tuple(snapshots),
        lineup=tuple(lineup),
        pacing=prep.pacing if prep else None,
        tactic=prep.tactic if prep else None,
        ski_choice=prep.ski_choice if prep else None,
        wax_choice=prep.wax_choice if prep else None,
        conditions=race_conditions,
    )
    return replace(state, has_started=True, active_race=active)


def _prep_from_formation(formation: TeamFormation, race_id: str) -> RacePrep:
    lineup = list(dict.fromkeys(a for a in formation.slots.values() if a))
    roles = {
        formation.slots[slot_id]: role
        for slot_id, role in formation.roles.items()
        if formation.slots.get(slot_id)
    }
    return RacePrep(race_id=race_id, lineup=tuple(lineup), roles=roles)


def start_next_race(
    state: GameState,
    courses: Optional[Mapping[str, RaceCourse]] = None,
    conditions: Optional[Mapping[str, RaceConditions]] = None,
    verbose: bool = False,
) -> GameState:
    """
    Trains and pays through the weeks up to the next uncompleted race, then
    starts it. A saved formation fills in the lineup when none is prepared.
    """
    completed = {result.race_id for result in state.past_results}
    upcoming = sorted((r for r in state.season_races if r.race_id not in completed), key=lambda r: r.week)
    if not upcoming:
        if verbose:
            print("  -> No races left this season.")
        return state
    next_race = upcoming[0]

    next_state = state
    while next_state.current_week < next_race.week:
        next_state = apply_weekly_finance(apply_weekly_training(next_state))
        next_state = replace(next_state, current_week=next_state.current_week + 1)

    prep = next_state.race_prep
    has_lineup = prep is not None and prep.race_id == next_race.race_id and bool(prep.lineup)
    formation = next_state.formations.get(next_state.resolved_player_team_id)
    if not has_lineup and formation is not None and formation.slots:
        next_state = replace(next_state, race_prep=_prep_from_formation(formation, next_race.race_id))

    if verbose:
        print(f"  -> Week {next_state.current_week}: starting {next_race.race_id} ({next_race.course_id})")
    return start_race(next_state, next_race.race_id, courses, conditions, verbose=verbose)


# --- Player actions ---

def set_race_prep(state: GameState, prep: Union[RacePrep, Mapping[str, Any], None]) -> GameState:
    """Stores the race prep; raw dicts are validated here so bad enums fail early."""
    if prep is not None and not isinstance(prep, RacePrep):
        prep = RacePrep.from_dict(prep)
    return replace(state, race_prep=prep)


def set_training_plans(state: GameState, plans: Sequence[WeeklyTrainingPlan]) -> GameState:
    return replace(state, training_plans=tuple(plans))


def set_formation(
    state: GameState,
    team_id: str,
    slots: Mapping[str, str],
    slot_roles: Mapping[str, Union[Role, str]],
) -> GameState:
    """
    Saves a team formation. Athletes slotted into their natural role gain
    morale and form; the rest lose a little of both.
    """
    roles: Dict[str, Role] = {slot_id: Role.from_str(role) for slot_id, role in slot_roles.items()}
    athletes = dict(state.athletes)
    for slot_id, athlete_id in slots.items():
        athlete = athletes.get(athlete_id)
        if athlete is None:
            continue
        assigned = roles.get(slot_id, athlete.role)
        effect = FORMATION_MATCH if assigned is athlete.role else FORMATION_MISMATCH
        condition = athlete.state
        athletes[athlete_id] = replace(
            athlete,
            state=replace(
                condition,
                morale=float(np.clip(condition.morale + effect["morale"], *MORALE_RANGE)),
                form=float(np.clip(condition.form + effect["form"], *FORM_RANGE)),
            ),
        )

    formation = TeamFormation(slots=dict(slots), roles=roles, last_updated_week=state.current_week)
    return replace(state, athletes=athletes, formations={**state.formations, team_id: formation})
