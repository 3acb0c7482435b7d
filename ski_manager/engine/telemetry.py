from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

MIN_GAP_SPEED = 0.1
DEFAULT_GAP_SPEED = 5.0


@dataclass(frozen=True)
class SnapshotAthlete:
    athlete_id: str
    distance: float
    lane_offset: float
    energy: float
    effort: float = 1.0
    group_id: Optional[int] = None


@dataclass(frozen=True)
class RaceSnapshot:
    t: float
    athletes: Tuple[SnapshotAthlete, ...] = field(default_factory=tuple)

    def athlete(self, athlete_id: str) -> Optional[SnapshotAthlete]:
        return next((a for a in self.athletes if a.athlete_id == athlete_id), None)

    def ordered(self) -> List[SnapshotAthlete]:
        return sorted(self.athletes, key=lambda a: -a.distance)


def _mix(a: float, b: float, alpha: float) -> float:
    return a + (b - a) * alpha


class SnapshotTimeline:
    """
    Append-only, time-ordered snapshot store used for playback.

    Lookups by time use binary search so scrubbing stays O(log n) however
    long the race is.
    """

    def __init__(self, snapshots: Optional[Sequence[RaceSnapshot]] = None) -> None:
        self.frames: List[RaceSnapshot] = []
        self._times: List[float] = []
        for snapshot in snapshots or ():
            self.record(snapshot)

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> RaceSnapshot:
        return self.frames[index]

    def record(self, snapshot: RaceSnapshot) -> None:
        if self._times and snapshot.t <= self._times[-1]:
            raise ValueError(f"Snapshot at t={snapshot.t} is not after t={self._times[-1]}")
        self.frames.append(snapshot)
        self._times.append(snapshot.t)

    def export(self) -> Sequence[RaceSnapshot]:
        return tuple(self.frames)

    def clear(self) -> None:
        self.frames.clear()
        self._times.clear()

    def final(self) -> Optional[RaceSnapshot]:
        return self.frames[-1] if self.frames else None

    def index_at(self, t: float) -> int:
        """Index of the first snapshot at or after t, clamped to the timeline."""
        if not self.frames:
            raise IndexError("Timeline is empty")
        return min(bisect_left(self._times, t), len(self.frames) - 1)

    def at_time(self, t: float) -> RaceSnapshot:
        """Interpolated state at time t, clamped to the recorded span."""
        if not self.frames:
            raise IndexError("Timeline is empty")
        t = max(self._times[0], min(t, self._times[-1]))
        b_idx = self.index_at(t)
        b = self.frames[b_idx]
        if b_idx == 0 or b.t == t:
            return b
        a = self.frames[b_idx - 1]

        span = max(0.001, b.t - a.t)
        alpha = min(1.0, max(0.0, (t - a.t) / span))
        b_lookup: Dict[str, SnapshotAthlete] = {athlete.athlete_id: athlete for athlete in b.athletes}
        mixed = []
        for athlete in a.athletes:
            nxt = b_lookup.get(athlete.athlete_id, athlete)
            mixed.append(
                replace(
                    athlete,
                    distance=_mix(athlete.distance, nxt.distance, alpha),
                    lane_offset=_mix(athlete.lane_offset, nxt.lane_offset, alpha),
                    energy=_mix(athlete.energy, nxt.energy, alpha),
                    group_id=nxt.group_id if nxt.group_id is not None else athlete.group_id,
                )
            )
        return RaceSnapshot(t=t, athletes=tuple(mixed))

    def gaps_at(self, t: float) -> Dict[str, float]:
        """Seconds behind the leader for every athlete at time t."""
        snapshot = self.at_time(t)
        return snapshot_gaps(snapshot)


def snapshot_gaps(snapshot: RaceSnapshot) -> Dict[str, float]:
    ordered = snapshot.ordered()
    if not ordered:
        return {}
    leader = ordered[0]
    if leader.distance > 0 and snapshot.t > 0:
        speed = leader.distance / snapshot.t
    else:
        speed = DEFAULT_GAP_SPEED
    speed = max(MIN_GAP_SPEED, speed)
    return {
        athlete.athlete_id: max(0.0, leader.distance - athlete.distance) / speed
        for athlete in ordered
    }
