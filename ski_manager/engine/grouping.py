from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .data_models import AthleteRuntime

GROUP_GAP = 8.0
LANE_OFFSETS = (-0.6, 0.0, 0.6)


@dataclass(frozen=True)
class GroupInfo:
    leader: str
    size: int


@dataclass
class Grouping:
    """Pack structure for one tick, rebuilt from scratch every tick."""

    group_of: Dict[str, int] = field(default_factory=dict)
    info: Dict[int, GroupInfo] = field(default_factory=dict)
    lanes: Dict[str, float] = field(default_factory=dict)
    lane_ahead: Dict[str, float] = field(default_factory=dict)

    def members(self, group_id: int) -> List[str]:
        return [athlete_id for athlete_id, gid in self.group_of.items() if gid == group_id]


def compute_groups(
    runtimes: Sequence[AthleteRuntime],
    group_gap: float = GROUP_GAP,
    lane_offsets: Sequence[float] = LANE_OFFSETS,
) -> Grouping:
    """
    Partitions runners into packs by distance gap and assigns lanes.

    Runners are walked front to back; a gap larger than group_gap to the
    runner in front opens a new pack whose first runner leads it. Inside a
    pack lanes are handed out round-robin and each runner remembers the
    distance of the previous runner placed in its lane.
    """
    ordered = sorted(runtimes, key=lambda state: -state.distance)
    grouping = Grouping()
    sizes: Dict[int, int] = {}
    leaders: Dict[int, str] = {}
    last_in_lane: List[Optional[float]] = [None] * len(lane_offsets)

    group_id = 0
    last_distance = float("inf")
    for state in ordered:
        if last_distance - state.distance > group_gap:
            group_id += 1
            last_in_lane = [None] * len(lane_offsets)
        last_distance = state.distance

        athlete_id = state.athlete_id
        grouping.group_of[athlete_id] = group_id
        leaders.setdefault(group_id, athlete_id)
        order_in_group = sizes.get(group_id, 0)
        sizes[group_id] = order_in_group + 1

        lane = order_in_group % len(lane_offsets)
        grouping.lanes[athlete_id] = lane_offsets[lane]
        previous = last_in_lane[lane]
        if previous is not None:
            grouping.lane_ahead[athlete_id] = previous
        last_in_lane[lane] = state.distance

    grouping.info = {gid: GroupInfo(leader=leaders[gid], size=size) for gid, size in sizes.items()}
    return grouping
