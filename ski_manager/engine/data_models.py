from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple


class LabelledEnum(Enum):
    """Enum parsed from the upper-case labels used in saves and configs."""

    @classmethod
    def from_str(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper().replace(" ", "_"))
        except ValueError as exc:
            raise ValueError(f"Unknown {cls.__name__.lower()}: {value}") from exc

    @property
    def key(self) -> str:
        """Lower-case key used in configs/game_balance.json."""
        return self.value.lower()


class Role(LabelledEnum):
    CAPTAIN = "CAPTAIN"
    DOMESTIQUE = "DOMESTIQUE"
    SPRINTER = "SPRINTER"
    CLIMBER = "CLIMBER"


class Gender(LabelledEnum):
    MALE = "M"
    FEMALE = "F"


class Health(LabelledEnum):
    OK = "OK"
    SICK = "SICK"
    INJURED = "INJURED"


class Pacing(LabelledEnum):
    DEFENSIVE = "DEFENSIVE"
    STEADY = "STEADY"
    AGGRESSIVE = "AGGRESSIVE"


class Tactic(LabelledEnum):
    PROTECT_LEADER = "PROTECT_LEADER"
    SPRINT_POINTS = "SPRINT_POINTS"
    BREAKAWAY = "BREAKAWAY"
    SURVIVE = "SURVIVE"


class Aggression(LabelledEnum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class SnowType(LabelledEnum):
    COLD = "COLD"
    WET = "WET"
    ICY = "ICY"
    FRESH = "FRESH"


class EquipmentType(LabelledEnum):
    SKI = "SKI"
    WAX = "WAX"


@dataclass(frozen=True)
class AthleteStats:
    endurance: float
    climbing: float
    flat: float
    sprint: float
    technique: float
    race_iq: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AthleteStats":
        return cls(
            endurance=float(data["endurance"]),
            climbing=float(data["climbing"]),
            flat=float(data["flat"]),
            sprint=float(data["sprint"]),
            technique=float(data["technique"]),
            race_iq=float(data.get("race_iq", data.get("raceIQ", 0.0))),
        )


@dataclass(frozen=True)
class AthleteCondition:
    """Mutable-by-replacement athlete state: form, fatigue, morale and health."""

    form: float = 0.0
    fatigue: float = 0.0
    morale: float = 70.0
    health: Health = Health.OK

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AthleteCondition":
        return cls(
            form=float(data.get("form", 0.0)),
            fatigue=float(data.get("fatigue", 0.0)),
            morale=float(data.get("morale", 70.0)),
            health=Health.from_str(data.get("health", "OK")),
        )


@dataclass(frozen=True)
class Contract:
    salary_per_week: float
    weeks_remaining: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Contract":
        return cls(
            salary_per_week=float(data["salary_per_week"]),
            weeks_remaining=int(data["weeks_remaining"]),
        )


@dataclass(frozen=True)
class Athlete:
    athlete_id: str
    name: str
    age: int
    potential: float
    role: Role
    base_stats: AthleteStats
    state: AthleteCondition
    contract: Contract
    team_id: str
    gender: Optional[Gender] = None
    traits: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Athlete":
        gender = data.get("gender")
        return cls(
            athlete_id=str(data["athlete_id"]),
            name=data["name"],
            age=int(data["age"]),
            potential=float(data["potential"]),
            role=Role.from_str(data["role"]),
            base_stats=AthleteStats.from_dict(data["base_stats"]),
            state=AthleteCondition.from_dict(data.get("state", {})),
            contract=Contract.from_dict(data["contract"]),
            team_id=str(data.get("team_id", "")),
            gender=Gender.from_str(gender) if gender else None,
            traits=tuple(data.get("traits", ())),
        )


@dataclass(frozen=True)
class RaceSegment:
    distance: float
    gradient: float
    difficulty: float
    is_sprint: bool = False
    is_climb: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RaceSegment":
        return cls(
            distance=float(data["distance"]),
            gradient=float(data["gradient"]),
            difficulty=float(data["difficulty"]),
            is_sprint=bool(data.get("is_sprint", False)),
            is_climb=bool(data.get("is_climb", False)),
        )


@dataclass(frozen=True)
class RaceCourse:
    course_id: str
    name: str
    total_distance: float
    segments: Sequence[RaceSegment] = field(default_factory=tuple)
    sprints: Sequence[float] = field(default_factory=tuple)
    climbs: Sequence[float] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RaceCourse":
        return cls(
            course_id=str(data["course_id"]),
            name=data.get("name", data["course_id"]),
            total_distance=float(data["total_distance"]),
            segments=tuple(RaceSegment.from_dict(seg) for seg in data.get("segments", ())),
            sprints=tuple(float(v) for v in data.get("sprints", ())),
            climbs=tuple(float(v) for v in data.get("climbs", ())),
        )


@dataclass(frozen=True)
class EquipmentItem:
    item_id: str
    name: str
    item_type: EquipmentType
    grip: float
    glide: float
    cost: float = 0.0
    stock: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EquipmentItem":
        return cls(
            item_id=str(data["item_id"]),
            name=data.get("name", data["item_id"]),
            item_type=EquipmentType.from_str(data.get("item_type", "SKI")),
            grip=float(data["grip"]),
            glide=float(data["glide"]),
            cost=float(data.get("cost", 0.0)),
            stock=int(data.get("stock", 0)),
        )


@dataclass(frozen=True)
class EquipmentInventory:
    items: Sequence[EquipmentItem] = field(default_factory=tuple)

    def find(self, item_id: Optional[str]) -> Optional[EquipmentItem]:
        if not item_id:
            return None
        return next((item for item in self.items if item.item_id == item_id), None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EquipmentInventory":
        return cls(items=tuple(EquipmentItem.from_dict(item) for item in data.get("items", ())))


@dataclass(frozen=True)
class RaceConditions:
    temperature_c: float
    snow: SnowType
    wind_kph: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RaceConditions":
        return cls(
            temperature_c=float(data.get("temperature_c", 0.0)),
            snow=SnowType.from_str(data["snow"]),
            wind_kph=float(data.get("wind_kph", 0.0)),
        )


@dataclass(frozen=True)
class RaceOrders:
    """Fine-grained team orders; every flag defaults to off."""

    protect_leader: bool = False
    chase_breaks: bool = False
    sprint_focus: bool = False
    climb_focus: bool = False
    aggression: Aggression = Aggression.NORMAL

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RaceOrders":
        if not data:
            return cls()
        return cls(
            protect_leader=bool(data.get("protect_leader", False)),
            chase_breaks=bool(data.get("chase_breaks", False)),
            sprint_focus=bool(data.get("sprint_focus", False)),
            climb_focus=bool(data.get("climb_focus", False)),
            aggression=Aggression.from_str(data.get("aggression") or "NORMAL"),
        )


@dataclass(frozen=True)
class RacePrep:
    """Player's pre-race configuration; string inputs are validated in from_dict."""

    race_id: str
    lineup: Tuple[str, ...] = ()
    ski_choice: Optional[str] = None
    wax_choice: Optional[str] = None
    pacing: Pacing = Pacing.STEADY
    roles: Dict[str, Role] = field(default_factory=dict)
    tactic: Tactic = Tactic.PROTECT_LEADER
    orders: RaceOrders = field(default_factory=RaceOrders)
    conditions: Optional[RaceConditions] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RacePrep":
        conditions = data.get("conditions")
        return cls(
            race_id=str(data["race_id"]),
            lineup=tuple(data.get("lineup", ())),
            ski_choice=data.get("ski_choice"),
            wax_choice=data.get("wax_choice"),
            pacing=Pacing.from_str(data.get("pacing") or "STEADY"),
            roles={athlete_id: Role.from_str(role) for athlete_id, role in (data.get("roles") or {}).items()},
            tactic=Tactic.from_str(data.get("tactic") or "PROTECT_LEADER"),
            orders=RaceOrders.from_dict(data.get("orders")),
            conditions=RaceConditions.from_dict(conditions) if conditions else None,
        )


@dataclass
class AthleteRuntime:
    """Per-tick mutable athlete state; lives for one simulation only."""

    athlete: Athlete
    distance: float = 0.0
    energy: float = 100.0
    lane_offset: float = 0.0
    effort: float = 1.0
    speed: float = 0.0

    @property
    def athlete_id(self) -> str:
        return self.athlete.athlete_id


@dataclass(frozen=True)
class RaceStartState:
    athlete_id: str
    distance: float
    energy: float
    lane_offset: float = 0.0
