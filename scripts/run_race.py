"""
Utility script to simulate a single race on one of the reference courses.

Usage:
    python scripts/run_race.py --course-id vasaloppet --pacing aggressive --silent

Every athlete in configs/reference_data.json takes part; the finish order
is printed with elapsed times and points.
"""

from __future__ import annotations

import argparse
import os
import sys

# Ensure repo root is on sys.path when script is executed from anywhere
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from ski_manager.engine import Pacing, RaceInput, RacePrep, Tactic, simulate_race  # noqa: E402
from ski_manager.outcome import rank_final_snapshot  # noqa: E402
from ski_manager.reference_data import DEFAULT_REFERENCE_REGISTRY  # noqa: E402


def main() -> None:
    registry = DEFAULT_REFERENCE_REGISTRY
    parser = argparse.ArgumentParser(description="Run a ski marathon simulation.")
    parser.add_argument("--course-id", default="vasaloppet", choices=sorted(registry.courses()), help="Course to race on.")
    parser.add_argument("--pacing", type=Pacing.from_str, default=Pacing.STEADY, help="DEFENSIVE, STEADY or AGGRESSIVE.")
    parser.add_argument("--tactic", type=Tactic.from_str, default=Tactic.PROTECT_LEADER, help="Team tactic.")
    parser.add_argument("--ski", default=None, help="Ski item id from the equipment list.")
    parser.add_argument("--wax", default=None, help="Wax item id from the equipment list.")
    parser.add_argument("--silent", action="store_true", help="Only print the podium.")
    args = parser.parse_args()

    course = registry.course(args.course_id)
    athletes = {athlete.athlete_id: athlete for athlete in registry.athletes()}
    prep = RacePrep(
        race_id=f"adhoc-{course.course_id}",
        ski_choice=args.ski,
        wax_choice=args.wax,
        pacing=args.pacing,
        tactic=args.tactic,
    )
    snapshots = simulate_race(
        RaceInput(
            course=course,
            athletes=list(athletes.values()),
            prep=prep,
            conditions=registry.conditions_for(course.course_id),
            equipment=registry.equipment(),
        ),
        verbose=not args.silent,
    )
    results = rank_final_snapshot(snapshots[-1], athletes)

    shown = results[:3] if args.silent else results
    print(f"\n{course.name} - Finish Order:")
    for place, entry in enumerate(shown, start=1):
        name = athletes[entry.athlete_id].name
        print(f"{place}. {name} ({entry.team_id}) {entry.time:.1f}s, {entry.points} pts")


if __name__ == "__main__":
    main()
