from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ski_manager.config import config_section, find_config_value

from .constants import CLIMB_GRADIENT, DESCENT_GRADIENT, MAX_ENERGY
from .course import segment_at
from .data_models import (
    Aggression,
    AthleteRuntime,
    Gender,
    Pacing,
    RaceConditions,
    RaceCourse,
    RaceOrders,
    Role,
    SnowType,
    Tactic,
)
from .gear import GearModifiers
from .grouping import GroupInfo, Grouping


def _lookup(config: Mapping[str, Any], path: str, fallback):
    value = find_config_value(config, path, fallback)
    if isinstance(fallback, tuple):
        return tuple(float(v) for v in value)
    return type(fallback)(value)


# --- Constants sourced from the balance sheet ---


@dataclass(frozen=True)
class BalanceTable:
    """Every tunable the advancer and race loop use, with shipped defaults."""

    tick_seconds: float = 2.0
    max_ticks: int = 25000
    speed_floor: float = 1.2
    speed_scale: float = 9.0
    group_gap: float = 8.0
    lane_offsets: Tuple[float, ...] = (-0.6, 0.0, 0.6)
    min_lane_gap: float = 0.8
    min_blocked_progress: float = 0.5
    female_power_multiplier: float = 0.9
    leader_power: float = 0.98
    follower_power: float = 1.06
    leader_cost: float = 1.08
    follower_cost: float = 0.90
    tactic_effort: Dict[Pacing, float] = field(
        default_factory=lambda: {Pacing.AGGRESSIVE: 1.15, Pacing.DEFENSIVE: 0.9}
    )
    pacing_effort: Dict[Pacing, float] = field(
        default_factory=lambda: {Pacing.AGGRESSIVE: 1.08, Pacing.DEFENSIVE: 0.94}
    )
    pacing_cost: Dict[Pacing, float] = field(
        default_factory=lambda: {Pacing.AGGRESSIVE: 1.2, Pacing.DEFENSIVE: 0.85}
    )
    captain_bonus: float = 1.04
    sprinter_bonus: float = 1.08
    climber_bonus: float = 1.08
    domestique_bonus: float = 1.03
    protect_leader_bonus: float = 1.02
    sprint_focus_bonus: float = 1.05
    climb_focus_bonus: float = 1.05
    aggression_effort: Dict[Aggression, float] = field(
        default_factory=lambda: {Aggression.LOW: 0.97, Aggression.HIGH: 1.03}
    )
    snow_penalty: Dict[SnowType, float] = field(
        default_factory=lambda: {SnowType.COLD: 0.98, SnowType.ICY: 0.99, SnowType.FRESH: 0.97}
    )
    wind_threshold_kph: float = 10.0
    wind_penalty: float = 0.99

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "BalanceTable":
        config = config_section("race_engine") if config is None else config
        defaults = cls()

        def _pacing_table(path: str, fallback: Dict[Pacing, float]) -> Dict[Pacing, float]:
            return {
                pacing: _lookup(config, f"{path}.{pacing.key}", value)
                for pacing, value in fallback.items()
            }

        return cls(
            tick_seconds=_lookup(config, "tick_seconds", defaults.tick_seconds),
            max_ticks=_lookup(config, "max_ticks", defaults.max_ticks),
            speed_floor=_lookup(config, "speed_floor", defaults.speed_floor),
            speed_scale=_lookup(config, "speed_scale", defaults.speed_scale),
            group_gap=_lookup(config, "group_gap", defaults.group_gap),
            lane_offsets=_lookup(config, "lane_offsets", defaults.lane_offsets),
            min_lane_gap=_lookup(config, "min_lane_gap", defaults.min_lane_gap),
            min_blocked_progress=_lookup(config, "min_blocked_progress", defaults.min_blocked_progress),
            female_power_multiplier=_lookup(config, "female_power_multiplier", defaults.female_power_multiplier),
            leader_power=_lookup(config, "draft.leader_power", defaults.leader_power),
            follower_power=_lookup(config, "draft.follower_power", defaults.follower_power),
            leader_cost=_lookup(config, "draft.leader_cost", defaults.leader_cost),
            follower_cost=_lookup(config, "draft.follower_cost", defaults.follower_cost),
            tactic_effort=_pacing_table("effort.tactic", defaults.tactic_effort),
            pacing_effort=_pacing_table("effort.pacing", defaults.pacing_effort),
            pacing_cost=_pacing_table("effort.pacing_cost", defaults.pacing_cost),
            captain_bonus=_lookup(config, "roles.captain", defaults.captain_bonus),
            sprinter_bonus=_lookup(config, "roles.sprinter_on_sprint", defaults.sprinter_bonus),
            climber_bonus=_lookup(config, "roles.climber_on_climb", defaults.climber_bonus),
            domestique_bonus=_lookup(config, "roles.domestique_in_pack", defaults.domestique_bonus),
            protect_leader_bonus=_lookup(config, "orders.protect_leader", defaults.protect_leader_bonus),
            sprint_focus_bonus=_lookup(config, "orders.sprint_focus", defaults.sprint_focus_bonus),
            climb_focus_bonus=_lookup(config, "orders.climb_focus", defaults.climb_focus_bonus),
            aggression_effort={
                Aggression.LOW: _lookup(config, "orders.aggression_low", defaults.aggression_effort[Aggression.LOW]),
                Aggression.HIGH: _lookup(config, "orders.aggression_high", defaults.aggression_effort[Aggression.HIGH]),
            },
            snow_penalty={
                snow: _lookup(config, f"conditions.snow.{snow.key}", value)
                for snow, value in defaults.snow_penalty.items()
            },
            wind_threshold_kph=_lookup(config, "conditions.wind_threshold_kph", defaults.wind_threshold_kph),
            wind_penalty=_lookup(config, "conditions.wind", defaults.wind_penalty),
        )


DEFAULT_BALANCE = BalanceTable.from_config()


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def tactic_effort(tactic: Union[Tactic, Pacing, None], balance: BalanceTable = DEFAULT_BALANCE) -> float:
    """
    Effort multiplier for the team tactic.

    Only the raw AGGRESSIVE/DEFENSIVE effort levels move the needle; the named
    tactics (PROTECT_LEADER, BREAKAWAY, ...) act through pacing instead.
    """
    if isinstance(tactic, Pacing):
        return balance.tactic_effort.get(tactic, 1.0)
    return 1.0


def pacing_effort(pacing: Optional[Pacing], balance: BalanceTable = DEFAULT_BALANCE) -> float:
    return balance.pacing_effort.get(pacing, 1.0)


def role_multiplier(
    role: Optional[Role],
    segment_is_sprint: bool,
    segment_is_climb: bool,
    in_pack_follower: bool,
    balance: BalanceTable = DEFAULT_BALANCE,
) -> float:
    if role is Role.CAPTAIN:
        return balance.captain_bonus
    if role is Role.SPRINTER:
        return balance.sprinter_bonus if segment_is_sprint else 1.0
    if role is Role.CLIMBER:
        return balance.climber_bonus if segment_is_climb else 1.0
    if role is Role.DOMESTIQUE:
        return balance.domestique_bonus if in_pack_follower else 1.0
    return 1.0


def orders_multiplier(
    orders: Optional[RaceOrders],
    role: Optional[Role],
    segment_is_sprint: bool,
    segment_is_climb: bool,
    in_pack_follower: bool,
    balance: BalanceTable = DEFAULT_BALANCE,
) -> float:
    if orders is None:
        return 1.0
    multiplier = 1.0
    if orders.protect_leader and role is Role.DOMESTIQUE and in_pack_follower:
        multiplier *= balance.protect_leader_bonus
    if orders.sprint_focus and role is Role.SPRINTER and segment_is_sprint:
        multiplier *= balance.sprint_focus_bonus
    if orders.climb_focus and role is Role.CLIMBER and segment_is_climb:
        multiplier *= balance.climb_focus_bonus
    multiplier *= balance.aggression_effort.get(orders.aggression, 1.0)
    return multiplier


def conditions_multiplier(conditions: Optional[RaceConditions], balance: BalanceTable = DEFAULT_BALANCE) -> float:
    if conditions is None:
        return 1.0
    multiplier = balance.snow_penalty.get(conditions.snow, 1.0)
    if conditions.wind_kph > balance.wind_threshold_kph:
        multiplier *= balance.wind_penalty
    return multiplier


def advance_athlete(
    runtime: AthleteRuntime,
    dt: float,
    course: RaceCourse,
    total_distance: float,
    tactic: Union[Tactic, Pacing, None],
    pacing: Optional[Pacing],
    gear: GearModifiers,
    conditions: Optional[RaceConditions],
    groups: Grouping,
    role_map: Mapping[str, Role],
    orders: Optional[RaceOrders] = None,
    balance: BalanceTable = DEFAULT_BALANCE,
) -> AthleteRuntime:
    """Advance one athlete by dt seconds and return the new runtime record."""
    athlete = runtime.athlete
    stats = athlete.base_stats
    condition = athlete.state
    segment = segment_at(course, runtime.distance)
    role = role_map.get(runtime.athlete_id, athlete.role)

    if segment.gradient > CLIMB_GRADIENT:
        terrain_factor = stats.climbing
    elif segment.gradient < DESCENT_GRADIENT:
        terrain_factor = stats.technique
    else:
        terrain_factor = stats.flat

    power = (
        stats.endurance * 0.5
        + terrain_factor * 0.4
        + condition.form * 0.2
        - condition.fatigue * 0.3
        + condition.morale * 0.1
    ) / 100.0

    if athlete.gender is Gender.FEMALE:
        power *= balance.female_power_multiplier

    group_id = groups.group_of.get(runtime.athlete_id)
    info = groups.info.get(group_id) or GroupInfo(leader=runtime.athlete_id, size=1)
    is_leader = info.leader == runtime.athlete_id
    in_pack_follower = info.size > 1 and not is_leader
    power *= balance.leader_power if is_leader else balance.follower_power

    effort = tactic_effort(tactic, balance) * pacing_effort(pacing, balance)
    power *= effort

    power *= role_multiplier(role, segment.is_sprint, segment.is_climb, in_pack_follower, balance)
    power *= orders_multiplier(orders, role, segment.is_sprint, segment.is_climb, in_pack_follower, balance)

    power *= gear.glide_mod
    energy_penalty = gear.grip_mod

    power *= conditions_multiplier(conditions, balance)

    power *= (max(runtime.energy, 0.0) / MAX_ENERGY) ** 0.7

    speed = max(balance.speed_floor, power * balance.speed_scale)

    energy_cost = (
        dt
        * 0.08
        * segment.difficulty
        * (1.0 + max(0.0, segment.gradient) / 10.0)
        * balance.pacing_cost.get(pacing, 1.0)
    )
    energy_cost *= balance.leader_cost if is_leader else balance.follower_cost

    distance = min(total_distance, runtime.distance + speed * dt)
    ahead_distance = groups.lane_ahead.get(runtime.athlete_id)
    if ahead_distance is not None:
        limit = max(runtime.distance + balance.min_blocked_progress, ahead_distance - balance.min_lane_gap)
        if distance > limit:
            distance = limit
            speed = max(balance.speed_floor, (distance - runtime.distance) / dt)

    energy = _clamp(runtime.energy - energy_cost - energy_penalty, 0.0, MAX_ENERGY)

    return replace(runtime, distance=distance, energy=energy, effort=effort, speed=speed)
