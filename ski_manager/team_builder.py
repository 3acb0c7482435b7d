from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Sequence

from ski_manager.engine.data_models import Athlete
from ski_manager.game_state import Team

DEFAULT_REPUTATION = 55.0


@dataclass(frozen=True)
class BuildResult:
    team: Team
    athletes: Dict[str, Athlete]
    remaining_budget: float


def overall_score(athlete: Athlete) -> float:
    stats = athlete.base_stats
    return (
        stats.endurance * 0.35
        + stats.climbing * 0.25
        + stats.flat * 0.15
        + stats.sprint * 0.1
        + stats.technique * 0.1
        + stats.race_iq * 0.05
    )


def build_team_from_budget(team_id: str, name: str, budget: float, candidates: Sequence[Athlete]) -> BuildResult:
    """
    Signs athletes greedily by value for money until the weekly salary
    budget runs out. Anyone too expensive for what is left is skipped.
    """
    ranked = sorted(
        candidates,
        key=lambda a: overall_score(a) / max(1.0, a.contract.salary_per_week),
        reverse=True,
    )

    remaining = budget
    roster = {}
    for athlete in ranked:
        salary = athlete.contract.salary_per_week
        if salary <= remaining:
            remaining -= salary
            roster[athlete.athlete_id] = replace(athlete, team_id=team_id)

    team = Team(
        team_id=team_id,
        name=name,
        budget=budget,
        athletes=tuple(roster),
        reputation=DEFAULT_REPUTATION,
    )
    return BuildResult(team=team, athletes=roster, remaining_budget=remaining)
