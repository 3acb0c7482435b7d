from __future__ import annotations

import json
import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ski_manager.engine.data_models import Athlete, EquipmentInventory, RaceConditions, RaceCourse
from ski_manager.game_state import (
    FacilityLevels,
    FinanceState,
    GameState,
    SeasonRace,
    Sponsor,
    StaffMember,
    Team,
)


def _default_reference_path() -> Path:
    # configs/ sits next to the package, so a non-editable install needs the override
    override = os.getenv("SKI_REFERENCE_DATA")
    if override:
        return Path(override)
    return Path(__file__).resolve().parents[1] / "configs" / "reference_data.json"


class ReferenceRegistry:
    """Loads and caches courses, calendar and seed data from a JSON file."""

    def __init__(self, path: Optional[Path] = None, data: Optional[Mapping[str, Any]] = None) -> None:
        self.path = Path(path) if path else _default_reference_path()
        self._raw: Mapping[str, Any] = data if data is not None else self._read()
        self._courses: Dict[str, RaceCourse] = {}
        self._conditions: Dict[str, RaceConditions] = {}
        self._index()

    def _read(self) -> Mapping[str, Any]:
        try:
            with open(self.path, "r") as f:
                return json.load(f)
        except FileNotFoundError:
            print(f"!!! WARNING: Reference data not found at {self.path}. Starting with an empty registry.")
        except json.JSONDecodeError as e:
            print(f"!!! WARNING: Could not parse reference data {self.path}: {e}")
        return {}

    def _index(self) -> None:
        for entry in self._raw.get("courses", ()):
            course = RaceCourse.from_dict(entry)
            self._courses[course.course_id] = course
        for course_id, entry in (self._raw.get("conditions") or {}).items():
            self._conditions[course_id] = RaceConditions.from_dict(entry)

    def course(self, course_id: str) -> Optional[RaceCourse]:
        return self._courses.get(course_id)

    def courses(self) -> Dict[str, RaceCourse]:
        return dict(self._courses)

    def conditions_for(self, course_id: str) -> Optional[RaceConditions]:
        return self._conditions.get(course_id)

    def conditions(self) -> Dict[str, RaceConditions]:
        return dict(self._conditions)

    def season_races(self) -> Tuple[SeasonRace, ...]:
        season = self._raw.get("season") or {}
        return tuple(SeasonRace.from_dict(entry) for entry in season.get("races", ()))

    def season_length_weeks(self) -> int:
        return int((self._raw.get("season") or {}).get("length_weeks", 16))

    def equipment(self) -> EquipmentInventory:
        return EquipmentInventory.from_dict(self._raw.get("equipment") or {})

    def finance_template(self) -> FinanceState:
        # History always starts empty
        template = dict(self._raw.get("finance_template") or {})
        template["history"] = []
        return FinanceState.from_dict(template)

    def staff(self) -> Tuple[StaffMember, ...]:
        return tuple(StaffMember.from_dict(entry) for entry in self._raw.get("staff", ()))

    def facilities(self) -> FacilityLevels:
        return FacilityLevels.from_dict(self._raw.get("facilities"))

    def sponsors(self) -> Tuple[Sponsor, ...]:
        return tuple(Sponsor.from_dict(entry) for entry in self._raw.get("sponsors", ()))

    def athletes(self) -> List[Athlete]:
        default_state = self._raw.get("default_athlete_state") or {}
        return [
            Athlete.from_dict({**entry, "state": entry.get("state", default_state)})
            for entry in self._raw.get("athletes", ())
        ]

    def teams(self) -> List[Team]:
        return [Team.from_dict(entry) for entry in self._raw.get("teams", ())]


def create_initial_state(
    registry: Optional[ReferenceRegistry] = None,
    player_team_id: Optional[str] = None,
    teams: Optional[Sequence[Team]] = None,
    athletes: Optional[Sequence[Athlete]] = None,
) -> GameState:
    """
    Builds a week-1 save from reference data.

    Team rosters are derived from each athlete's team_id so the two always
    agree. The player's team defaults to the first team.
    """
    registry = registry or DEFAULT_REFERENCE_REGISTRY
    teams = list(teams) if teams is not None else registry.teams()
    athletes = list(athletes) if athletes is not None else registry.athletes()

    roster: Dict[str, List[str]] = {team.team_id: [] for team in teams}
    for athlete in athletes:
        roster.setdefault(athlete.team_id, []).append(athlete.athlete_id)
    team_map = {team.team_id: replace(team, athletes=tuple(roster[team.team_id])) for team in teams}

    if not player_team_id:
        player_team_id = next(iter(team_map), "")

    return GameState(
        player_team_id=player_team_id,
        teams=team_map,
        athletes={athlete.athlete_id: athlete for athlete in athletes},
        finance=registry.finance_template(),
        current_week=1,
        season_length_weeks=registry.season_length_weeks(),
        has_started=False,
        staff=registry.staff(),
        facilities=registry.facilities(),
        sponsors=registry.sponsors(),
        equipment=registry.equipment(),
        season_races=registry.season_races(),
    )


DEFAULT_REFERENCE_REGISTRY = ReferenceRegistry()
