from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ski_manager.engine.data_models import (
    Athlete,
    EquipmentInventory,
    LabelledEnum,
    Pacing,
    RaceConditions,
    RacePrep,
    Role,
    Tactic,
)
from ski_manager.engine.telemetry import RaceSnapshot, SnapshotAthlete


class StaffRole(LabelledEnum):
    COACH = "COACH"
    WAX = "WAX"
    PHYSIO = "PHYSIO"
    SCOUT = "SCOUT"


class TrainingIntensity(LabelledEnum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"
    REST = "REST"


class TrainingFocus(LabelledEnum):
    ENDURANCE = "ENDURANCE"
    CLIMB = "CLIMB"
    SPEED = "SPEED"


class RaceType(LabelledEnum):
    MARATHON = "MARATHON"
    HILLY = "HILLY"
    SPRINTY = "SPRINTY"


class SponsorTier(LabelledEnum):
    MAIN = "MAIN"
    CO = "CO"
    EQUIPMENT = "EQUIPMENT"


class TransferStatus(LabelledEnum):
    LISTED = "LISTED"
    FREE = "FREE"
    LOAN = "LOAN"
    NOT_FOR_SALE = "NOT_FOR_SALE"


@dataclass(frozen=True)
class Team:
    team_id: str
    name: str
    budget: float
    athletes: Tuple[str, ...] = ()
    reputation: float = 50.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Team":
        return cls(
            team_id=str(data["team_id"]),
            name=data.get("name", data["team_id"]),
            budget=float(data.get("budget", 0.0)),
            athletes=tuple(str(a) for a in data.get("athletes", ())),
            reputation=float(data.get("reputation", 50.0)),
        )


@dataclass(frozen=True)
class FinanceEntry:
    week: int
    delta: float
    reason: str


@dataclass(frozen=True)
class FinanceState:
    balance: float
    weekly_income: float
    weekly_expenses: float = 0.0
    history: Tuple[FinanceEntry, ...] = ()

    def with_entry(self, week: int, delta: float, reason: str) -> "FinanceState":
        """Applies delta to the balance and records why."""
        return FinanceState(
            balance=self.balance + delta,
            weekly_income=self.weekly_income,
            weekly_expenses=self.weekly_expenses,
            history=self.history + (FinanceEntry(week=week, delta=delta, reason=reason),),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinanceState":
        return cls(
            balance=float(data.get("balance", 0.0)),
            weekly_income=float(data.get("weekly_income", 0.0)),
            weekly_expenses=float(data.get("weekly_expenses", 0.0)),
            history=tuple(
                FinanceEntry(week=int(e["week"]), delta=float(e["delta"]), reason=e["reason"])
                for e in data.get("history", ())
            ),
        )


@dataclass(frozen=True)
class StaffMember:
    staff_id: str
    name: str
    role: StaffRole
    skill: float
    salary: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaffMember":
        return cls(
            staff_id=str(data["staff_id"]),
            name=data["name"],
            role=StaffRole.from_str(data["role"]),
            skill=float(data.get("skill", 0.0)),
            salary=float(data.get("salary", 0.0)),
        )


@dataclass(frozen=True)
class FacilityLevels:
    training_center: int = 1
    recovery_center: int = 1
    altitude_access: int = 1

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FacilityLevels":
        data = data or {}
        return cls(
            training_center=int(data.get("training_center", 1)),
            recovery_center=int(data.get("recovery_center", 1)),
            altitude_access=int(data.get("altitude_access", 1)),
        )


@dataclass(frozen=True)
class Sponsor:
    sponsor_id: str
    name: str
    tier: SponsorTier
    weekly_income: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sponsor":
        return cls(
            sponsor_id=str(data["sponsor_id"]),
            name=data["name"],
            tier=SponsorTier.from_str(data.get("tier", "CO")),
            weekly_income=float(data.get("weekly_income", 0.0)),
        )


@dataclass(frozen=True)
class TrainingSession:
    day: int
    intensity: TrainingIntensity
    focus: TrainingFocus


@dataclass(frozen=True)
class WeeklyTrainingPlan:
    athlete_id: str
    sessions: Tuple[TrainingSession, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeeklyTrainingPlan":
        return cls(
            athlete_id=str(data["athlete_id"]),
            sessions=tuple(
                TrainingSession(
                    day=int(s.get("day", 0)),
                    intensity=TrainingIntensity.from_str(s["intensity"]),
                    focus=TrainingFocus.from_str(s.get("focus") or "ENDURANCE"),
                )
                for s in data.get("sessions", ())
            ),
        )


@dataclass(frozen=True)
class SeasonRace:
    race_id: str
    course_id: str
    week: int
    race_type: RaceType
    prize_money: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SeasonRace":
        return cls(
            race_id=str(data["race_id"]),
            course_id=str(data["course_id"]),
            week=int(data["week"]),
            race_type=RaceType.from_str(data.get("race_type", "MARATHON")),
            prize_money=float(data.get("prize_money", 0.0)),
        )


@dataclass(frozen=True)
class RaceResultEntry:
    athlete_id: str
    time: float
    points: int
    team_id: str


@dataclass(frozen=True)
class RaceMeta:
    """The race prep that produced a result, archived with it."""

    lineup: Tuple[str, ...] = ()
    pacing: Optional[Pacing] = None
    tactic: Optional[Tactic] = None
    ski_choice: Optional[str] = None
    wax_choice: Optional[str] = None
    conditions: Optional[RaceConditions] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RaceMeta":
        data = data or {}
        return cls(
            lineup=tuple(data.get("lineup", ())),
            pacing=Pacing.from_str(data["pacing"]) if data.get("pacing") else None,
            tactic=Tactic.from_str(data["tactic"]) if data.get("tactic") else None,
            ski_choice=data.get("ski_choice"),
            wax_choice=data.get("wax_choice"),
            conditions=RaceConditions.from_dict(data["conditions"]) if data.get("conditions") else None,
        )


@dataclass(frozen=True)
class RaceResultSummary:
    race_id: str
    results: Tuple[RaceResultEntry, ...]
    meta: RaceMeta = field(default_factory=RaceMeta)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RaceResultSummary":
        return cls(
            race_id=str(data["race_id"]),
            results=tuple(
                RaceResultEntry(
                    athlete_id=str(r["athlete_id"]),
                    time=float(r["time"]),
                    points=int(r["points"]),
                    team_id=str(r.get("team_id", "")),
                )
                for r in data.get("results", ())
            ),
            meta=RaceMeta.from_dict(data.get("meta")),
        )


@dataclass(frozen=True)
class Standings:
    athletes: Dict[str, float] = field(default_factory=dict)
    teams: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Standings":
        data = data or {}
        return cls(
            athletes={k: float(v) for k, v in (data.get("athletes") or {}).items()},
            teams={k: float(v) for k, v in (data.get("teams") or {}).items()},
        )


@dataclass(frozen=True)
class TransferCandidate:
    athlete_id: str
    asking_price: float
    status: TransferStatus
    interest: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TransferCandidate":
        return cls(
            athlete_id=str(data["athlete_id"]),
            asking_price=float(data["asking_price"]),
            status=TransferStatus.from_str(data.get("status", "LISTED")),
            interest=float(data.get("interest", 0.0)),
        )


@dataclass(frozen=True)
class IncomingOffer:
    athlete_id: str
    from_team_id: str
    amount: float
    week: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IncomingOffer":
        return cls(
            athlete_id=str(data["athlete_id"]),
            from_team_id=str(data["from_team_id"]),
            amount=float(data["amount"]),
            week=int(data.get("week", 0)),
        )


@dataclass(frozen=True)
class TeamFormation:
    slots: Dict[str, str] = field(default_factory=dict)  # slot id -> athlete id
    roles: Dict[str, Role] = field(default_factory=dict)  # slot id -> role
    last_updated_week: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TeamFormation":
        return cls(
            slots={k: str(v) for k, v in (data.get("slots") or {}).items()},
            roles={k: Role.from_str(v) for k, v in (data.get("roles") or {}).items()},
            last_updated_week=data.get("last_updated_week"),
        )


@dataclass(frozen=True)
class ActiveRace:
    race_id: str
    course_id: str
    snapshots: Tuple[RaceSnapshot, ...]
    lineup: Tuple[str, ...] = ()
    pacing: Optional[Pacing] = None
    tactic: Optional[Tactic] = None
    ski_choice: Optional[str] = None
    wax_choice: Optional[str] = None
    conditions: Optional[RaceConditions] = None

    def meta(self) -> RaceMeta:
        return RaceMeta(
            lineup=self.lineup,
            pacing=self.pacing,
            tactic=self.tactic,
            ski_choice=self.ski_choice,
            wax_choice=self.wax_choice,
            conditions=self.conditions,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActiveRace":
        meta = RaceMeta.from_dict(data)
        return cls(
            race_id=str(data["race_id"]),
            course_id=str(data["course_id"]),
            snapshots=tuple(
                RaceSnapshot(t=float(s["t"]), athletes=tuple(SnapshotAthlete(**a) for a in s.get("athletes", ())))
                for s in data.get("snapshots", ())
            ),
            lineup=meta.lineup,
            pacing=meta.pacing,
            tactic=meta.tactic,
            ski_choice=meta.ski_choice,
            wax_choice=meta.wax_choice,
            conditions=meta.conditions,
        )


@dataclass(frozen=True)
class GameState:
    """The whole save: roster, calendar, finances and race history."""

    player_team_id: str
    teams: Dict[str, Team]
    athletes: Dict[str, Athlete]
    finance: FinanceState
    current_week: int = 1
    season_length_weeks: int = 12
    has_started: bool = False
    staff: Tuple[StaffMember, ...] = ()
    facilities: FacilityLevels = field(default_factory=FacilityLevels)
    sponsors: Tuple[Sponsor, ...] = ()
    equipment: EquipmentInventory = field(default_factory=EquipmentInventory)
    transfer_list: Tuple[TransferCandidate, ...] = ()
    incoming_offers: Tuple[IncomingOffer, ...] = ()
    race_prep: Optional[RacePrep] = None
    training_plans: Tuple[WeeklyTrainingPlan, ...] = ()
    season_races: Tuple[SeasonRace, ...] = ()
    past_results: Tuple[RaceResultSummary, ...] = ()
    standings: Standings = field(default_factory=Standings)
    active_race: Optional[ActiveRace] = None
    formations: Dict[str, TeamFormation] = field(default_factory=dict)

    @property
    def resolved_player_team_id(self) -> str:
        """Player team id, falling back to the first team in the save."""
        if self.player_team_id:
            return self.player_team_id
        return next(iter(self.teams), "")

    def season_race(self, race_id: str) -> Optional[SeasonRace]:
        return next((race for race in self.season_races if race.race_id == race_id), None)

    def team_athletes(self, team_id: str) -> Sequence[Athlete]:
        team = self.teams.get(team_id)
        if team is None:
            return []
        return [self.athletes[a] for a in team.athletes if a in self.athletes]

    def to_dict(self, include_active_race: bool = False) -> Dict[str, Any]:
        data = to_plain(self)
        if not include_active_race:
            data.pop("active_race", None)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameState":
        race_prep = data.get("race_prep")
        active_race = data.get("active_race")
        return cls(
            player_team_id=str(data.get("player_team_id", "")),
            teams={k: Team.from_dict(v) for k, v in (data.get("teams") or {}).items()},
            athletes={k: Athlete.from_dict(v) for k, v in (data.get("athletes") or {}).items()},
            finance=FinanceState.from_dict(data.get("finance") or {}),
            current_week=int(data.get("current_week", 1)),
            season_length_weeks=int(data.get("season_length_weeks", 12)),
            has_started=bool(data.get("has_started", False)),
            staff=tuple(StaffMember.from_dict(s) for s in data.get("staff", ())),
            facilities=FacilityLevels.from_dict(data.get("facilities")),
            sponsors=tuple(Sponsor.from_dict(s) for s in data.get("sponsors", ())),
            equipment=EquipmentInventory.from_dict(data.get("equipment") or {}),
            transfer_list=tuple(TransferCandidate.from_dict(c) for c in data.get("transfer_list", ())),
            incoming_offers=tuple(IncomingOffer.from_dict(o) for o in data.get("incoming_offers", ())),
            race_prep=RacePrep.from_dict(race_prep) if race_prep else None,
            training_plans=tuple(WeeklyTrainingPlan.from_dict(p) for p in data.get("training_plans", ())),
            season_races=tuple(SeasonRace.from_dict(r) for r in data.get("season_races", ())),
            past_results=tuple(RaceResultSummary.from_dict(r) for r in data.get("past_results", ())),
            standings=Standings.from_dict(data.get("standings")),
            active_race=ActiveRace.from_dict(active_race) if active_race else None,
            formations={k: TeamFormation.from_dict(v) for k, v in (data.get("formations") or {}).items()},
        )


def to_plain(value: Any) -> Any:
    """Recursively converts dataclasses and enums into JSON-ready structures."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value
