"""
Race engine package for tick-based ski marathon simulation.

The package is split into data models, terrain lookup, gear resolution,
grouping, the per-athlete advancer and the snapshot timeline. The race
loop composes these pieces into a full simulation.
"""

from .course import elevation_profile, segment_at  # noqa: F401
from .data_models import (  # noqa: F401
    Aggression,
    Athlete,
    AthleteCondition,
    AthleteRuntime,
    AthleteStats,
    Contract,
    EquipmentInventory,
    EquipmentItem,
    EquipmentType,
    Gender,
    Health,
    Pacing,
    RaceConditions,
    RaceCourse,
    RaceOrders,
    RacePrep,
    RaceSegment,
    RaceStartState,
    Role,
    SnowType,
    Tactic,
)
from .gear import GearModifiers, resolve_gear  # noqa: F401
from .grouping import GroupInfo, Grouping, compute_groups  # noqa: F401
from .physics import DEFAULT_BALANCE, BalanceTable, advance_athlete  # noqa: F401
from .telemetry import RaceSnapshot, SnapshotAthlete, SnapshotTimeline, snapshot_gaps  # noqa: F401
from .race_loop import RaceInput, RaceSimulator, continue_race, simulate_race  # noqa: F401

__all__ = [
    "elevation_profile",
    "segment_at",
    "Aggression",
    "Athlete",
    "AthleteCondition",
    "AthleteRuntime",
    "AthleteStats",
    "Contract",
    "EquipmentInventory",
    "EquipmentItem",
    "EquipmentType",
    "Gender",
    "Health",
    "Pacing",
    "RaceConditions",
    "RaceCourse",
    "RaceOrders",
    "RacePrep",
    "RaceSegment",
    "RaceStartState",
    "Role",
    "SnowType",
    "Tactic",
    "GearModifiers",
    "resolve_gear",
    "GroupInfo",
    "Grouping",
    "compute_groups",
    "DEFAULT_BALANCE",
    "BalanceTable",
    "advance_athlete",
    "RaceSnapshot",
    "SnapshotAthlete",
    "SnapshotTimeline",
    "snapshot_gaps",
    "RaceInput",
    "RaceSimulator",
    "continue_race",
    "simulate_race",
]
